"""
CRM Dispatcher.

Posts payloads to CRM workflow webhooks. Sends run as detached tasks: the
caller is never blocked and dispatch failures are logged and swallowed.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, Dict, Optional

import httpx

from config.credentials import CredentialProvider, StaticCredentials
from config.settings import Settings

from .sequences import SequenceName
from .tasks import DetachedTaskQueue

logger = logging.getLogger(__name__)


class WebhookTarget(str, Enum):
    """CRM workflows that accept payloads. Values are the trigger slugs."""
    HOT_LEAD_ALERT = "hot-lead-alert"
    NEW_LEAD_SEQUENCE = "new-lead-sequence"
    STALE_LEAD_SEQUENCE = "stale-lead-sequence"
    INCOMPLETE_APP_SEQUENCE = "incomplete-app-sequence"
    DOCS_NEEDED_SEQUENCE = "docs-needed-sequence"
    NURTURE_SEQUENCE = "nurture-sequence"
    ABANDONMENT_RECOVERY = "abandonment-recovery"


SEQUENCE_TARGETS: Dict[str, WebhookTarget] = {
    SequenceName.NEW_LEAD.value: WebhookTarget.NEW_LEAD_SEQUENCE,
    SequenceName.STALE_LEAD.value: WebhookTarget.STALE_LEAD_SEQUENCE,
    SequenceName.INCOMPLETE_APP.value: WebhookTarget.INCOMPLETE_APP_SEQUENCE,
    SequenceName.DOCS_NEEDED.value: WebhookTarget.DOCS_NEEDED_SEQUENCE,
    SequenceName.NURTURE.value: WebhookTarget.NURTURE_SEQUENCE,
}


def target_for_sequence(sequence: str) -> WebhookTarget:
    return SEQUENCE_TARGETS.get(getattr(sequence, "value", sequence), WebhookTarget.NEW_LEAD_SEQUENCE)


class WebhookConfig:
    """
    Resolves webhook URLs.

    An explicit per-target URL wins; otherwise the URL is built from the base
    and location id. Without either the target is unconfigured.
    """

    def __init__(
        self,
        base_url: str = "https://services.leadconnectorhq.com/hooks",
        location_id: Optional[str] = None,
        overrides: Optional[Dict[WebhookTarget, str]] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.location_id = location_id
        self.overrides = {k: v for k, v in (overrides or {}).items() if v}

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookConfig":
        return cls(
            base_url=settings.crm_webhook_base,
            location_id=settings.crm_location_id,
            overrides={
                WebhookTarget.HOT_LEAD_ALERT: settings.crm_webhook_hot_lead,
                WebhookTarget.NEW_LEAD_SEQUENCE: settings.crm_webhook_new_lead,
                WebhookTarget.STALE_LEAD_SEQUENCE: settings.crm_webhook_stale_lead,
                WebhookTarget.INCOMPLETE_APP_SEQUENCE: settings.crm_webhook_incomplete_app,
                WebhookTarget.DOCS_NEEDED_SEQUENCE: settings.crm_webhook_docs_needed,
                WebhookTarget.NURTURE_SEQUENCE: settings.crm_webhook_nurture,
                WebhookTarget.ABANDONMENT_RECOVERY: settings.crm_webhook_abandonment,
            },
        )

    def resolve(self, target: WebhookTarget) -> Optional[str]:
        if target in self.overrides:
            return self.overrides[target]
        if self.location_id:
            return f"{self.base_url}/{self.location_id}/webhook-trigger/{target.value}"
        return None


@dataclass
class DispatchResult:
    """Outcome of one webhook post."""
    target: WebhookTarget
    url: Optional[str]
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class CRMDispatcher:
    """
    Sends payloads to CRM workflow webhooks.

    Single attempt per payload, HTTP client default timeouts, no retries.
    """

    def __init__(
        self,
        webhooks: Optional[WebhookConfig] = None,
        credentials: Optional[CredentialProvider] = None,
        task_queue: Optional[DetachedTaskQueue] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        history_size: int = 100
    ):
        """
        Initialize the dispatcher.

        Args:
            webhooks: URL resolution
            credentials: Bearer token provider for the CRM
            task_queue: Queue for detached sends
            transport: httpx transport override (tests use httpx.MockTransport)
            history_size: Number of recent results kept
        """
        self.webhooks = webhooks or WebhookConfig()
        self.credentials = credentials or StaticCredentials()
        self.task_queue = task_queue or DetachedTaskQueue("crm-dispatch")
        self.transport = transport
        self.history: Deque[DispatchResult] = deque(maxlen=history_size)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.credentials.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def send(self, target: WebhookTarget, payload: Dict[str, Any]) -> DispatchResult:
        """
        Post a payload and wait for the response.

        Never raises: failures are logged and returned.
        """
        url = self.webhooks.resolve(target)
        if not url:
            logger.warning(f"No webhook configured for {target.value}, payload not sent")
            result = DispatchResult(target=target, url=None, success=False, error="not_configured")
            self.history.append(result)
            return result

        try:
            logger.info(f"Sending webhook to: {url}")
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(url, json=payload, headers=self._headers())

            if response.is_success:
                logger.info(f"Webhook {target.value} sent successfully ({response.status_code})")
                result = DispatchResult(target, url, True, response.status_code)
            else:
                logger.error(
                    f"Webhook {target.value} failed: {response.status_code} {response.text[:500]}"
                )
                result = DispatchResult(target, url, False, response.status_code, response.reason_phrase)

        except httpx.HTTPError as e:
            logger.error(f"Webhook {target.value} error: {e!r}")
            result = DispatchResult(target, url, False, error=str(e) or type(e).__name__)
        except Exception as e:
            logger.error(f"Webhook {target.value} unexpected error: {e!r}")
            result = DispatchResult(target, url, False, error=str(e) or type(e).__name__)

        self.history.append(result)
        return result

    def dispatch(self, target: WebhookTarget, payload: Dict[str, Any]) -> None:
        """Submit a send as a detached task and return immediately."""
        self.task_queue.submit(self.send(target, payload), label=f"webhook:{target.value}")

    def dispatch_sequence(self, sequence: str, payload: Dict[str, Any]) -> None:
        self.dispatch(target_for_sequence(sequence), payload)

    async def drain(self) -> None:
        """Wait for in-flight sends."""
        await self.task_queue.drain()
