from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

import requests

from ..models.exchange import ConfirmResponse, ConfirmRow, PreviewResponse, ResponseFormatError
from ..models.person import ImportRow

"""HTTP client for the backend matching / merge service.

Two JSON exchanges:
- POST {base_url}/people/import/preview  {"rows": [ImportRow...]}
- POST {base_url}/people/import/confirm  {"rows": [ConfirmRow...]}

Any failure to obtain a well-formed response (connection error, timeout,
non-2xx status, undecodable body) raises ServiceTransportError. Row-level
errors inside a 2xx response are data, not failures.
"""

__all__ = [
    "MatchingService",
    "MatchingServiceClient",
    "ServiceTransportError",
]

logger = logging.getLogger(__name__)


class ServiceTransportError(Exception):
    """The call did not produce a usable response; nothing was applied locally."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class MatchingService(Protocol):
    def preview(self, rows: Sequence[ImportRow]) -> PreviewResponse: ...

    def confirm(self, rows: Sequence[ConfirmRow]) -> ConfirmResponse: ...


class MatchingServiceClient:
    PREVIEW_PATH = "/people/import/preview"
    CONFIRM_PATH = "/people/import/confirm"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()

    def _post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("POST %s rows=%d", url, len(payload.get("rows", [])))
        try:
            resp = self._session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise ServiceTransportError(f"request to {url} failed: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None

        if not resp.ok:
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            if not message:
                reason = f": {resp.reason}" if resp.reason else ""
                message = f"Request failed with status {resp.status_code}{reason}"
            raise ServiceTransportError(str(message), status_code=resp.status_code, payload=body)

        if body is None:
            raise ServiceTransportError(f"invalid JSON response from {url}", status_code=resp.status_code)
        return body

    def preview(self, rows: Sequence[ImportRow]) -> PreviewResponse:
        body = self._post(self.PREVIEW_PATH, {"rows": [r.to_payload() for r in rows]})
        try:
            return PreviewResponse.from_dict(body)
        except ResponseFormatError as e:
            raise ServiceTransportError(f"malformed preview response: {e}", payload=body) from e

    def confirm(self, rows: Sequence[ConfirmRow]) -> ConfirmResponse:
        body = self._post(self.CONFIRM_PATH, {"rows": [r.to_payload() for r in rows]})
        try:
            return ConfirmResponse.from_dict(body)
        except ResponseFormatError as e:
            raise ServiceTransportError(f"malformed confirm response: {e}", payload=body) from e
