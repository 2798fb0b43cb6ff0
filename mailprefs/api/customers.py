"""Customer-facing routes: pause, move list, unsubscribe, brand subscriptions."""

import logging
from typing import Callable, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from mailprefs.api.deps import get_audit_store, get_track_client
from mailprefs.core.exceptions import ExternalAPIError, StorageError
from mailprefs.schemas.schemas import (
    ActionResponse, MessageResponse, SubscriptionUpdateRequest, UnsubscribeAllRequest,
)
from mailprefs.services import actions
from mailprefs.services.audit_service import AuditStore
from mailprefs.services.track_client import TrackClient

logger = logging.getLogger("mailprefs.customers")

router = APIRouter(tags=["customers"])

# query action -> (adapter call, success message, failure message)
ActionHandler = Tuple[Callable[[TrackClient, str], None], str, str]

ACTION_HANDLERS: Dict[str, ActionHandler] = {
    "pause": (
        lambda client, email: client.set_paused(email, True),
        "Customer ({email}) has been paused.",
        "Error processing pause request. Check logs.",
    ),
    "unpause": (
        lambda client, email: client.set_paused(email, False),
        "Customer ({email}) has been unpaused.",
        "Error processing unpause request. Check logs.",
    ),
    "international": (
        lambda client, email: client.move_to_international_list(email),
        "Customer ({email}) moved to Australian/International list.",
        "Error processing international request. Check logs.",
    ),
    "unsubscribe": (
        lambda client, email: client.unsubscribe(email),
        "Customer ({email}) has been unsubscribed.",
        "Error processing unsubscribe request. Check logs.",
    ),
}


def record_action(store: AuditStore, email: str, action: str) -> None:
    """Write the audit row after a successful Track API call.

    The external system of record is already updated, so a storage failure
    only leaves a gap in the audit trail and is logged, not raised.
    """
    try:
        store.record(email, action)
    except StorageError as e:
        logger.warning("Failed to log %s action to database for %s: %s", action, email, e.message)


def _failure(status_code: int, response: ActionResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=response.model_dump())


@router.get("/", response_model=ActionResponse)
def landing(
    email: Optional[str] = Query(None),
    cio: Optional[str] = Query(None, description="Legacy Customer.io customer id"),
    action: Optional[str] = Query(None),
    client: TrackClient = Depends(get_track_client),
    store: AuditStore = Depends(get_audit_store),
):
    """Apply a one-click action from an email link.

    With ``email`` and ``action`` the action is mirrored to Customer.io and
    recorded. ``cio`` alone is the older link format and always pauses.
    Anything else just returns the empty landing state.
    """
    if email:
        if not action:
            logger.info("Email provided but no action specified; showing landing state")
            return ActionResponse(success=False, message="", email=email)

        key = action.strip().lower()
        handler = ACTION_HANDLERS.get(key)
        if handler is None:
            logger.warning("Unknown action %r requested for %s", action, email)
            return _failure(
                status.HTTP_400_BAD_REQUEST,
                ActionResponse(success=False, message="Unknown action requested.", email=email, action=action),
            )

        call, success_message, failure_message = handler
        try:
            call(client, email)
        except ExternalAPIError as e:
            logger.error(
                "Error processing %s for %s (source list removed=%s): %s",
                key, email, getattr(e, "removed", False), e.message,
            )
            return _failure(
                status.HTTP_502_BAD_GATEWAY,
                ActionResponse(success=False, message=failure_message, email=email, action=key),
            )

        record_action(store, email, actions.QUERY_ACTIONS[key])
        return ActionResponse(
            success=True, message=success_message.format(email=email), email=email, action=key,
        )

    if cio:
        logger.info("Legacy link with customer id %s; pausing", cio)
        try:
            client.set_paused(cio, True)
        except ExternalAPIError as e:
            logger.error("Error pausing customer id %s: %s", cio, e.message)
            return _failure(
                status.HTTP_502_BAD_GATEWAY,
                ActionResponse(success=False, message="Error processing request. Check logs.", cio_id=cio),
            )
        record_action(store, cio, actions.PAUSE)
        return ActionResponse(
            success=True, message=f"Customer (ID: {cio}) has been paused.", cio_id=cio, action="pause",
        )

    return ActionResponse(success=False, message="")


@router.post("/update-subscriptions", response_model=MessageResponse)
def update_subscriptions(
    body: SubscriptionUpdateRequest,
    client: TrackClient = Depends(get_track_client),
    store: AuditStore = Depends(get_audit_store),
):
    """Set or clear individual brand subscriptions."""
    logger.info("Updating %d subscriptions for %s", len(body.subscriptions), body.email)
    try:
        client.update_subscriptions(body.email, body.subscriptions)
    except ExternalAPIError as e:
        logger.error("Failed to update subscriptions for %s: %s", body.email, e.message)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=MessageResponse(success=False, message="Failed to update subscriptions").model_dump(),
        )

    record_action(store, body.email, actions.SUBSCRIPTION_UPDATE)
    return MessageResponse(message="Subscriptions updated successfully")


@router.post("/unsubscribe-all", response_model=MessageResponse)
def unsubscribe_all(
    body: UnsubscribeAllRequest,
    client: TrackClient = Depends(get_track_client),
    store: AuditStore = Depends(get_audit_store),
):
    """Unsubscribe from every brand and set the permanent flag."""
    logger.info("Unsubscribing all brands for %s", body.email)
    try:
        client.unsubscribe_all_brands(body.email)
    except ExternalAPIError as e:
        logger.error("Failed to unsubscribe all for %s: %s", body.email, e.message)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=MessageResponse(success=False, message="Failed to unsubscribe").model_dump(),
        )

    record_action(store, body.email, actions.UNSUBSCRIBE_ALL)
    return MessageResponse(message="Unsubscribed from all brands successfully")
