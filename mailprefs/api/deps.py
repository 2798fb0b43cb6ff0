"""Request-scoped accessors for objects built once in the app factory."""

from fastapi import Request

from mailprefs.core.config import Settings
from mailprefs.services.audit_service import AuditStore
from mailprefs.services.track_client import TrackClient


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_audit_store(request: Request) -> AuditStore:
    return request.app.state.audit_store


def get_track_client(request: Request) -> TrackClient:
    return request.app.state.track_client
