"""
Definition API client.

Thin synchronous wrapper over :mod:`httpx` for the three endpoints the
engine uses::

    POST {base}/api/{version}/definitions/publish        publish one definition
    GET  {base}/api/{version}/definitions/re-initialize  reload after a batch
    GET  {base}/health                                   liveness

``publish`` never raises: transport errors, timeouts and non-2xx answers all
come back as a failed :class:`PublishResult` so one bad definition cannot
stop a batch.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx

from vnext_sync.core.errors import PublishError
from vnext_sync.core.logging import get_logger
from vnext_sync.core.settings import SyncSettings

logger = get_logger(__name__)


@dataclass
class PublishResult:
    success: bool
    instance_id: str | None = None
    error: str | None = None
    error_details: Any = None
    status_code: int | None = None

    @classmethod
    def from_error(cls, error: PublishError) -> PublishResult:
        return cls(
            success=False,
            error=error.message,
            error_details=error.details,
            status_code=error.status_code,
        )


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def extract_error(body: Any, status_code: int | None = None) -> PublishError:
    """Build a :class:`PublishError` from a failed response body.

    Order: plain-text body, ``error.message`` (with ``error`` as details),
    top-level ``message``, then the whole body serialised.
    """
    details = None
    if body is None or body == "":
        message = f"HTTP {status_code}" if status_code is not None else "Empty response"
    elif isinstance(body, str):
        message = body
    elif isinstance(body, dict) and isinstance(body.get("error"), dict) and body["error"].get("message"):
        message = str(body["error"]["message"])
        details = body["error"]
    elif isinstance(body, dict) and isinstance(body.get("error"), str) and body["error"]:
        message = body["error"]
    elif isinstance(body, dict) and body.get("message"):
        message = str(body["message"])
    else:
        message = json.dumps(body, ensure_ascii=False)
    return PublishError(message, status_code=status_code, details=details)


def extract_instance_id(body: Any) -> str | None:
    """``id`` / ``Id`` from the response, also looking one level into ``data``."""
    if not isinstance(body, dict):
        return None
    for candidate in (body, body.get("data")):
        if isinstance(candidate, dict):
            for name in ("id", "Id"):
                if candidate.get(name) is not None:
                    return str(candidate[name])
    return None


class DefinitionApiClient:
    """Publishes definitions to the workflow engine.

    Pass *client* to inject a preconfigured :class:`httpx.Client` (tests use
    one built on ``httpx.MockTransport``). A client created here is closed by
    :meth:`close`.
    """

    def __init__(self, settings: SyncSettings, client: httpx.Client | None = None) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.Client()

    # ── Endpoints ────────────────────────────────────────────────

    def publish(self, payload: dict[str, Any]) -> PublishResult:
        url = self.settings.publish_url
        try:
            response = self._client.post(url, json=payload, timeout=self.settings.publish_timeout)
        except httpx.TimeoutException as exc:
            logger.debug("publish_timeout", url=url, error=str(exc))
            return PublishResult.from_error(
                PublishError(f"Request timed out after {self.settings.publish_timeout:g}s", cause=exc)
            )
        except httpx.HTTPError as exc:
            logger.debug("publish_transport_error", url=url, error=str(exc))
            return PublishResult.from_error(PublishError(f"Request failed: {exc}", cause=exc))

        body = _decode_body(response)
        if response.is_success:
            return PublishResult(
                success=True,
                instance_id=extract_instance_id(body),
                status_code=response.status_code,
            )
        return PublishResult.from_error(extract_error(body, response.status_code))

    def reinitialize(self) -> bool:
        """Ask the engine to reload definitions. Returns False on any failure."""
        url = self.settings.reinitialize_url
        try:
            response = self._client.get(url, timeout=self.settings.reinitialize_timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("reinitialize_failed", url=url, error=str(exc))
            return False
        return True

    def health(self) -> bool:
        url = self.settings.health_url
        try:
            response = self._client.get(url, timeout=self.settings.health_timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("health_check_failed", url=url, error=str(exc))
            return False
        return True

    # ── Lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> DefinitionApiClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
