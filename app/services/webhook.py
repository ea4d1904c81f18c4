import asyncio
import json
import logging
import secrets
import time
from typing import Optional, Union

import httpx
from pydantic import ValidationError

from app.core.config import Settings, settings
from app.core.enums import AttemptKind, DeliveryState, EventType, FormType
from app.core.metrics import attribution_posts, webhook_deliveries, webhook_duration
from app.schemas.diagnostics import DiagnosticEntry
from app.schemas.lead import DispatchResult, LeadSubmission
from app.services.diagnostics import DiagnosticsBuffer, utcnow
from app.services.lead_payload import LeadRecord, build_lead_record, build_webhook_payload

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (502, 503)
RESPONSE_SNIPPET = 500


def attribution_payload(submission: LeadSubmission) -> Optional[dict]:
    """Identifier and UTM fields for the CRM, or None when no email or phone is known."""
    email = submission.contact_email()
    phone = submission.contact_phone()
    if not email and not phone:
        return None
    return {
        "email": email,
        "phone": phone,
        "utm_source": submission.utm_source or None,
        "utm_medium": submission.utm_medium or None,
        "utm_campaign": submission.utm_campaign or None,
        "utm_term": submission.utm_term or None,
        "utm_content": submission.utm_content or None,
        "fbclid": submission.fbclid or None,
        "referrer": submission.referrer or None,
    }


class WebhookDispatcher:
    """Relays leads to the CRM automation hooks.

    One POST per lead to either the lead or the order hook. A 502/503 from the
    automation platform is retried once, after ``WEBHOOK_RETRY_DELAY`` seconds,
    against the alternate lead URL, and the lead is then reported as delivered
    whatever the retry returns. Every attempt lands in the diagnostics buffer.
    """

    def __init__(
        self,
        diagnostics: DiagnosticsBuffer,
        config: Settings = settings,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.diagnostics = diagnostics
        self.config = config
        self._client = client
        self._background: set[asyncio.Task] = set()

    def endpoint_for(self, event_type: Optional[str]) -> str:
        if event_type == EventType.FINAL_SUBMISSION.value:
            return self.config.ORDER_WEBHOOK_URL
        return self.config.LEAD_WEBHOOK_URL

    async def _post(self, url: str, body: str, headers: dict, timeout: float) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, content=body, headers=headers, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, content=body, headers=headers)

    def _headers(self, request_id: str, size: int) -> dict:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.WEBHOOK_USER_AGENT,
            "X-Request-ID": request_id,
            "X-Payload-Size": str(size),
        }

    def _record_attempt(
        self,
        record: LeadRecord,
        payload: dict,
        url: str,
        request_id: str,
        attempt: AttemptKind,
        size: int,
        elapsed_ms: float,
        success: bool,
        status: Optional[int] = None,
        error: Optional[str] = None,
        response_text: Optional[str] = None,
    ) -> DiagnosticEntry:
        webhook_duration.labels(attempt=attempt.value).observe(elapsed_ms / 1000)
        return self.diagnostics.record(DiagnosticEntry(
            id=f"sub_{int(time.time() * 1000)}_{secrets.token_hex(4)}",
            timestamp=utcnow(),
            request_id=request_id,
            url=url,
            event_type=record.event_type,
            form_type=FormType.FINAL if record.is_final else FormType.QUOTE,
            attempt=attempt,
            status=status,
            response_time_ms=round(elapsed_ms, 1),
            payload_size_bytes=size,
            success=success,
            error=error,
            response_text=response_text,
            payload=payload,
        ))

    def _finish(self, record: LeadRecord, state: DeliveryState, message: str, diagnostics: dict) -> DispatchResult:
        endpoint = "order" if record.is_final else "lead"
        webhook_deliveries.labels(endpoint=endpoint, state=state.value).inc()
        success = state is not DeliveryState.HARD_FAILURE
        diagnostics["success"] = success
        diagnostics["state"] = state.value
        return DispatchResult(success=success, message=message, state=state, diagnostics=diagnostics)

    async def send_to_webhook(self, lead_data: Union[LeadSubmission, dict]) -> DispatchResult:
        try:
            submission = (
                lead_data if isinstance(lead_data, LeadSubmission)
                else LeadSubmission.model_validate(lead_data)
            )
            record = build_lead_record(submission)
            payload = build_webhook_payload(record)
            body = json.dumps(payload, default=str)
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"Webhook payload could not be built: {e}")
            return DispatchResult(
                success=False,
                message=f"Error sending webhook: {e}",
                state=DeliveryState.HARD_FAILURE,
            )
        return await self._deliver(record, payload, body)

    async def _deliver(self, record: LeadRecord, payload: dict, body: str) -> DispatchResult:
        url = self.endpoint_for(record.event_type)
        size = len(body.encode("utf-8"))
        request_id = f"req_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        diagnostics = {
            "request_id": request_id,
            "webhook_url": url,
            "payload_size_bytes": size,
            "response_status": None,
            "response_time_ms": None,
            "retry_attempted": False,
            "error": None,
        }

        logger.info(f"Sending {record.event_type} {record.submission_id} to {url} ({size} bytes)")
        start = time.monotonic()
        try:
            response = await self._post(url, body, self._headers(request_id, size), self.config.WEBHOOK_TIMEOUT)
        except httpx.TimeoutException:
            elapsed = (time.monotonic() - start) * 1000
            error = f"Request timed out after {elapsed:.0f}ms"
            logger.error(f"Webhook timeout for {record.submission_id}: {error}")
            diagnostics.update(response_time_ms=round(elapsed, 1), error=error)
            self._record_attempt(record, payload, url, request_id, AttemptKind.INITIAL, size, elapsed,
                                 success=False, error=error)
            return self._finish(record, DeliveryState.HARD_FAILURE, f"Webhook request timed out: {error}", diagnostics)
        except Exception as e:
            elapsed = (time.monotonic() - start) * 1000
            logger.error(f"Webhook delivery error for {record.submission_id}: {e}")
            diagnostics.update(response_time_ms=round(elapsed, 1), error=str(e))
            self._record_attempt(record, payload, url, request_id, AttemptKind.INITIAL, size, elapsed,
                                 success=False, error=str(e))
            return self._finish(record, DeliveryState.HARD_FAILURE,
                                f"Network error while sending webhook: {e}", diagnostics)

        elapsed = (time.monotonic() - start) * 1000
        text = response.text[:RESPONSE_SNIPPET]
        diagnostics.update(response_status=response.status_code, response_time_ms=round(elapsed, 1))

        if response.status_code in RETRYABLE_STATUSES:
            error = f"Automation platform returned {response.status_code}"
            logger.warning(f"{error} for {record.submission_id}, retrying once")
            diagnostics["error"] = {"status": response.status_code, "message": response.reason_phrase,
                                    "response_text": text}
            self._record_attempt(record, payload, url, request_id, AttemptKind.INITIAL, size, elapsed,
                                 success=False, status=response.status_code, error=error, response_text=text)
            return await self._retry(record, payload, body, request_id, size, diagnostics)

        if not response.is_success:
            error = f"Webhook error ({response.status_code}): {response.reason_phrase}"
            logger.error(f"{error} for {record.submission_id}: {text}")
            diagnostics["error"] = {"status": response.status_code, "message": response.reason_phrase,
                                    "response_text": text}
            self._record_attempt(record, payload, url, request_id, AttemptKind.INITIAL, size, elapsed,
                                 success=False, status=response.status_code, error=error, response_text=text)
            return self._finish(record, DeliveryState.HARD_FAILURE, error, diagnostics)

        try:
            diagnostics["json_response"] = response.json()
        except ValueError:
            diagnostics["text_response"] = text
        self._record_attempt(record, payload, url, request_id, AttemptKind.INITIAL, size, elapsed,
                             success=True, status=response.status_code, response_text=text)
        logger.info(f"Webhook delivered for {record.submission_id} in {elapsed:.0f}ms")
        return self._finish(record, DeliveryState.SUCCESS, "Webhook sent successfully", diagnostics)

    async def _retry(
        self,
        record: LeadRecord,
        payload: dict,
        body: str,
        request_id: str,
        size: int,
        diagnostics: dict,
    ) -> DispatchResult:
        await asyncio.sleep(self.config.WEBHOOK_RETRY_DELAY)

        # Always the lead hook's alternate URL, even when the order hook failed
        url = self.config.lead_retry_url
        retry_id = f"{request_id}_retry"
        headers = self._headers(retry_id, size)
        headers["X-Retry"] = "true"
        diagnostics["retry_attempted"] = True
        diagnostics["retry_url"] = url

        start = time.monotonic()
        try:
            response = await self._post(url, body, headers, self.config.WEBHOOK_TIMEOUT)
        except Exception as e:
            elapsed = (time.monotonic() - start) * 1000
            logger.error(f"Webhook retry failed for {record.submission_id}: {e}")
            diagnostics.update(retry_successful=False, retry_response_time_ms=round(elapsed, 1), retry_error=str(e))
            self._record_attempt(record, payload, url, retry_id, AttemptKind.RETRY, size, elapsed,
                                 success=False, error=str(e))
            return self._finish(record, DeliveryState.RETRY_FAILURE,
                                "Webhook data delivery attempted but the automation platform was unavailable",
                                diagnostics)

        elapsed = (time.monotonic() - start) * 1000
        text = response.text[:RESPONSE_SNIPPET]
        diagnostics.update(retry_response_status=response.status_code, retry_response_time_ms=round(elapsed, 1))

        if response.is_success:
            logger.info(f"Webhook retry succeeded for {record.submission_id} in {elapsed:.0f}ms")
            diagnostics["retry_successful"] = True
            self._record_attempt(record, payload, url, retry_id, AttemptKind.RETRY, size, elapsed,
                                 success=True, status=response.status_code, response_text=text)
            return self._finish(record, DeliveryState.RETRY_SUCCESS,
                                "Webhook data successfully delivered (after retry)", diagnostics)

        logger.warning(f"Webhook retry returned {response.status_code} for {record.submission_id}")
        diagnostics["retry_successful"] = False
        diagnostics["retry_error"] = {"status": response.status_code, "message": response.reason_phrase}
        self._record_attempt(record, payload, url, retry_id, AttemptKind.RETRY, size, elapsed,
                             success=False, status=response.status_code,
                             error=f"Retry returned {response.status_code}", response_text=text)
        return self._finish(record, DeliveryState.RETRY_FAILURE,
                            "Webhook data delivery attempted but the automation platform returned errors",
                            diagnostics)

    def spawn_attribution(self, submission: LeadSubmission) -> Optional[asyncio.Task]:
        payload = attribution_payload(submission)
        if payload is None:
            logger.warning("Attribution skipped: no email or phone identifier")
            return None
        task = asyncio.create_task(self._send_attribution(payload))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _send_attribution(self, payload: dict) -> None:
        headers = {
            "Content-Type": "application/json",
            "X-Attribution-Source": "quote-calculator",
            "User-Agent": self.config.WEBHOOK_USER_AGENT,
        }
        try:
            response = await self._post(self.config.ATTRIBUTION_URL, json.dumps(payload), headers,
                                        self.config.ATTRIBUTION_TIMEOUT)
        except Exception as e:
            attribution_posts.labels(status="failed").inc()
            logger.error(f"Attribution webhook failed: {e}")
            return

        if response.is_success:
            attribution_posts.labels(status="success").inc()
            logger.info(f"Attribution webhook accepted ({response.status_code})")
        else:
            attribution_posts.labels(status="error").inc()
            logger.error(f"Attribution webhook error {response.status_code}: {response.text[:200]}")

    async def relay_lead(self, lead_data: Union[LeadSubmission, dict]) -> DispatchResult:
        """Fire the attribution side-channel, then dispatch the lead itself."""
        if isinstance(lead_data, LeadSubmission):
            submission = lead_data
        else:
            try:
                submission = LeadSubmission.model_validate(lead_data)
            except ValidationError as e:
                logger.error(f"Lead rejected before relay: {e}")
                return DispatchResult(success=False, message=f"Error sending webhook: {e}",
                                      state=DeliveryState.HARD_FAILURE)
        self.spawn_attribution(submission)
        return await self.send_to_webhook(submission)

    async def drain(self) -> None:
        """Wait for pending attribution posts."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
