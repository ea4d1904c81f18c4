"""Request-scoped access to the objects the app lifespan owns."""
from fastapi import Request

from app.services.diagnostics import DiagnosticsBuffer
from app.services.locations import LocationIndex
from app.services.webhook import WebhookDispatcher


def get_diagnostics(request: Request) -> DiagnosticsBuffer:
    return request.app.state.diagnostics


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


def get_location_index(request: Request) -> LocationIndex:
    return request.app.state.locations


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
