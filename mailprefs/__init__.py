"""Self-service email preference centre backed by Customer.io."""

__version__ = "0.1.0"
