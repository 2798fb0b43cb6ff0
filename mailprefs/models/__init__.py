"""Models package: import all models so create_all can discover them."""

from mailprefs.models.audit_log import AuditRecord

__all__ = ["AuditRecord"]
