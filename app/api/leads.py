import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from app.api.deps import client_key, get_dispatcher
from app.core.enums import EventType, FormType
from app.core.rate_limit import check_rate_limit
from app.schemas.lead import LeadRelayResponse, LeadSubmission
from app.services.validation import is_diagnostic_ping, normalize_final_submission, validate_form_data
from app.services.webhook import WebhookDispatcher

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/leads", tags=["leads"])

PING_ACK = "noop - ignored diagnostic ping"


def _validation_failed(sub: LeadSubmission, form_type: FormType) -> Optional[JSONResponse]:
    errors = validate_form_data(sub, form_type)
    if not errors:
        return None
    logger.error(f"{form_type.value} submission failed validation: {[e.field for e in errors]}")
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Form validation failed",
            "validationErrors": [e.model_dump() for e in errors],
        },
    )


@router.post("/webhook", response_model=LeadRelayResponse)
async def relay_quote_lead(
    request: Request,
    payload: Optional[LeadSubmission] = Body(None),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    if payload is None or is_diagnostic_ping(payload):
        logger.info("Diagnostic ping ignored")
        return PlainTextResponse(PING_ACK, status_code=200)

    await check_rate_limit(client_key(request))

    invalid = _validation_failed(payload, FormType.QUOTE)
    if invalid is not None:
        return invalid

    # Client disconnects must not abort a delivery already under way
    result = await asyncio.shield(dispatcher.relay_lead(payload))
    if not result.success:
        logger.error(f"Lead delivery failed: {result.message}")
        return JSONResponse(
            status_code=500,
            content=LeadRelayResponse(
                success=False,
                message="Failed to send lead to CRM system",
                error=result.message,
            ).model_dump(),
        )
    return LeadRelayResponse(success=True, message="Lead successfully sent to CRM system")


@router.post("/final-submission", response_model=LeadRelayResponse)
async def relay_final_submission(
    request: Request,
    payload: Optional[LeadSubmission] = Body(None),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """Booking form: always delivered to the order hook."""
    if payload is None:
        return JSONResponse(status_code=400, content={"success": False, "error": "Empty request body received"})

    await check_rate_limit(client_key(request))

    sub = normalize_final_submission(
        payload.model_copy(update={"event_type": EventType.FINAL_SUBMISSION.value})
    )
    invalid = _validation_failed(sub, FormType.FINAL)
    if invalid is not None:
        return invalid

    result = await asyncio.shield(dispatcher.relay_lead(sub))
    if not result.success:
        logger.error(f"Final submission delivery failed: {result.message}")
        return JSONResponse(
            status_code=500,
            content=LeadRelayResponse(
                success=False,
                message="Failed to send final submission to order system",
                error=result.message,
            ).model_dump(),
        )
    return LeadRelayResponse(success=True, message="Final submission successfully sent to CRM system")
