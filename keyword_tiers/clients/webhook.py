"""Client for the keyword analysis webhook."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from keyword_tiers.clients.base import APIError, BaseAPIClient
from keyword_tiers.config import Settings, get_settings
from keyword_tiers.models.keyword import DeliveryPayload, DeliveryResponse

logger = logging.getLogger(__name__)


class DeliveryError(APIError):
    """Raised when the webhook cannot be reached or answers badly."""

    pass


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_webhook_response(data: Any) -> bool:
    """
    Check that a webhook response has the expected shape.

    Expected: ``{"status": <number>, "body": {"ID": <non-empty str>,
    "Auto Suggest": <str>}}``. An empty suggestion string is allowed.

    Raises:
        DeliveryError: With status 400, naming the first invalid field
    """
    if not isinstance(data, dict):
        raise DeliveryError("Invalid response: not an object", 400)

    if not _is_number(data.get("status")):
        raise DeliveryError("Invalid response: missing or invalid status", 400)

    body = data.get("body")
    if not isinstance(body, dict):
        raise DeliveryError("Invalid response: missing or invalid body", 400)

    keyword_id = body.get("ID")
    if not isinstance(keyword_id, str) or not keyword_id:
        raise DeliveryError("Invalid response: missing or invalid ID", 400)

    if not isinstance(body.get("Auto Suggest"), str):
        raise DeliveryError("Invalid response: missing or invalid Auto Suggest", 400)

    return True


class WebhookClient(BaseAPIClient):
    """
    Sends batch analysis payloads to the enrichment webhook.

    Every failure (transport, unparseable body, HTTP error status or an
    invalid response shape) is retried. The wait before attempt ``n + 1``
    is ``retry_delay * n`` seconds. Once all attempts are spent a single
    DeliveryError wraps the last failure.
    """

    def __init__(
        self,
        webhook_url: str | None = None,
        settings: Settings | None = None,
        max_attempts: int | None = None,
        retry_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        settings = settings or get_settings()
        super().__init__(base_url=webhook_url or settings.webhook_url, settings=settings)
        self.max_attempts = max_attempts or settings.webhook_max_attempts
        self.retry_delay = settings.webhook_retry_delay if retry_delay is None else retry_delay
        self._sleep = sleep or asyncio.sleep

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _post_payload(self, body: dict[str, Any]) -> httpx.Response:
        """POST the raw payload; status handling is left to the caller."""
        return await self.client.post(self.base_url, json=body)

    async def _attempt(self, body: dict[str, Any], attempt: int) -> DeliveryResponse:
        logger.info(f"Sending webhook attempt {attempt}...", extra={"attempt": attempt})

        try:
            response = await self._post_payload(body)
        except httpx.HTTPError as e:
            raise DeliveryError(str(e) or e.__class__.__name__) from e

        try:
            data = json.loads(response.text)
        except ValueError as e:
            raise DeliveryError(
                "Failed to parse response as JSON",
                status_code=response.status_code,
            ) from e

        logger.debug(f"Webhook response (attempt {attempt}): {data}")

        if not response.is_success:
            raise DeliveryError(
                f"Server responded with {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
                response_data=data,
            )

        validate_webhook_response(data)
        return DeliveryResponse.model_validate(data)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        wait = retry_state.next_action.sleep if retry_state.next_action else 0
        status_code = getattr(error, "status_code", None)
        logger.warning(
            f"Webhook attempt {retry_state.attempt_number} failed: {error} "
            f"(status={status_code}); retrying in {wait:.1f}s",
            extra={"attempt": retry_state.attempt_number, "status_code": status_code},
        )

    async def send_keyword_data(
        self, payload: DeliveryPayload | dict[str, Any]
    ) -> DeliveryResponse:
        """
        Deliver a payload and return the validated response.

        Args:
            payload: Batch payload (model or already-serialized dict)

        Returns:
            Validated DeliveryResponse

        Raises:
            DeliveryError: After all attempts failed
        """
        body = payload.to_wire() if isinstance(payload, DeliveryPayload) else payload

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.retry_delay, increment=self.retry_delay),
            retry=retry_if_exception_type(DeliveryError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._attempt(body, attempt.retry_state.attempt_number)
        except DeliveryError as last_error:
            final_error = DeliveryError(
                f"Failed to send data to webhook after {self.max_attempts} attempts: "
                f"{last_error.message}",
                status_code=last_error.status_code,
                response_data=last_error.response_data,
            )
            logger.error(
                f"All webhook attempts failed: {final_error.message} "
                f"(status={final_error.status_code})"
            )
            raise final_error from last_error
