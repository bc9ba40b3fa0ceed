# summary_desk/services/summary_trigger.py
"""Client for the external summarization webhooks (n8n).

The summary webhook starts an out-of-process job that eventually writes
summaries/<base>.md to the blob store. Nothing in its response says when that
happens; completion is observed only by re-listing the catalog.
"""
from datetime import datetime, timezone
from typing import Optional

import httpx

from summary_desk.config import settings
from summary_desk.exceptions import ConfigurationError, TriggerRejected
from summary_desk.utils.logging import logger

ALREADY_EXISTS_MESSAGE = "summary already exists"


def _error_payload(response: httpx.Response) -> Optional[str]:
    """Return the webhook's {"Error": ...} message, if it sent one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("Error") or body.get("error")
        if error:
            return str(error)
    return None


class SummarizationTrigger:
    """Fires the summary and spin-up webhooks."""

    def __init__(self, url: str, auth_key: str, *, auth_header: str = "X-N8N-Auth", spin_up_url: str = "",
                 timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.auth_key = auth_key
        self.auth_header = auth_header
        self.spin_up_url = spin_up_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "SummarizationTrigger":
        """
        Raises:
            ConfigurationError: If the webhook URL or auth key is missing
        """
        if not settings.summary_webhook_configured:
            raise ConfigurationError(
                "Summary generation is not configured (SUMMARY_WEBHOOK_URL, WEBHOOK_AUTH_KEY)",
                operation="trigger_summary",
            )
        return cls(
            settings.summary_webhook_url,
            settings.webhook_auth_key,
            auth_header=settings.webhook_auth_header,
            spin_up_url=settings.spin_up_webhook_url,
            timeout=settings.webhook_timeout_seconds,
            transport=transport,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _headers(self) -> dict:
        return {"Content-Type": "application/json", self.auth_header: self.auth_key}

    async def trigger(self, name: str, object_path: str) -> None:
        """POST {pdfName, objectPath} to the summary webhook.

        Raises:
            TriggerRejected: non-2xx status, network error, or an "already exists"
                payload (already_exists=True, not a real failure)
        """
        try:
            async with self._client() as client:
                response = await client.post(
                    self.url,
                    json={"pdfName": name, "objectPath": object_path},
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.warning("Summary webhook unreachable", extra={"document": name, "error": str(e)})
            raise TriggerRejected(f"Summary webhook unreachable: {e}", key=name) from e

        error = _error_payload(response)
        if error and ALREADY_EXISTS_MESSAGE in error.lower():
            logger.info("Summary webhook reports existing summary", extra={"document": name})
            raise TriggerRejected(error, key=name, status_code=response.status_code, already_exists=True)

        if not response.is_success:
            logger.warning(
                f"Summary webhook rejected request: {response.status_code}",
                extra={"document": name, "status_code": response.status_code},
            )
            raise TriggerRejected(
                error or f"Summary webhook returned {response.status_code}",
                key=name,
                status_code=response.status_code,
            )

        logger.info("Summary generation triggered", extra={"document": name, "object_path": object_path})

    async def spin_up(self) -> bool:
        """Wake the summarization workers after a login. Best effort."""
        if not self.spin_up_url:
            logger.warning("Spin-up webhook URL not configured. Skipping spin-up.")
            return False
        try:
            async with self._client() as client:
                response = await client.post(
                    self.spin_up_url,
                    json={"event": "userLoggedIn", "timestamp": datetime.now(timezone.utc).isoformat()},
                    headers=self._headers(),
                )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to trigger spin-up webhook: {e}")
            return False

        if not response.is_success:
            logger.warning(f"Spin-up webhook failed: {response.status_code}")
            return False
        logger.info("Spin-up webhook triggered successfully")
        return True
