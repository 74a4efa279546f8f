"""Attachment text extraction through the Gemini REST API."""

from __future__ import annotations

import base64
import logging
import threading
import time
from typing import Any, Dict, Optional

import requests

from vaultindexer.errors import FatalExtractionError, RecoverableExtractionError
from vaultindexer.extraction.base import BytesFetcher

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash"
MAX_INLINE_SIZE_MB = 20.0

PDF_PROMPT = (
    "Extract and summarize the content of this PDF. Provide the complete text and a brief "
    "summary. If the PDF contains images, include descriptions of them and the full text "
    "they contain."
)
IMAGE_PROMPT = (
    "Extract and summarize the content of this image. Provide the complete text and a brief "
    "summary."
)

_FATAL_STATUS = {401, 403, 429}
_RETRY_STATUS = {500, 502, 503, 504}


class RequestThrottle:
    """Keeps successive requests at least ``interval`` seconds apart.

    One throttle is shared by every extractor that uses the same API key,
    since the quota belongs to the key.
    """

    def __init__(self, interval: float = 4.0) -> None:
        self.interval = interval
        self._last_request: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            if self._last_request is not None:
                wait = self.interval - (time.monotonic() - self._last_request)
                if wait > 0:
                    LOGGER.debug("Rate limiting: sleeping %.2fs", wait)
                    time.sleep(wait)
            self._last_request = time.monotonic()


class GeminiExtractor:
    """Sends one attachment per request to Gemini and returns the generated text.

    Requests go through ``throttle``, which defaults to a private
    ``RequestThrottle(request_interval)``. Quota, authentication and
    persistent server or network failures are fatal for the run; problems
    specific to one attachment are recoverable.
    """

    def __init__(
        self,
        api_key: str,
        mime_type: str,
        prompt: str,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        request_interval: float = 4.0,
        timeout: float = 120.0,
        max_retries: int = 2,
        max_size_mb: float = MAX_INLINE_SIZE_MB,
        session: Optional[requests.Session] = None,
        throttle: Optional[RequestThrottle] = None,
    ) -> None:
        self.api_key = api_key.strip()
        self.mime_type = mime_type
        self.prompt = prompt
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.max_size_mb = max_size_mb
        self._session = session or requests.Session()
        self.throttle = throttle or RequestThrottle(request_interval)

    def is_available(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def extract(self, size_mb: float, fetch_bytes: BytesFetcher, path: str) -> str:
        if not self.is_available():
            raise FatalExtractionError("No Google API key configured", path=path)
        if size_mb > self.max_size_mb:
            raise RecoverableExtractionError(
                f"Attachment is {size_mb:.1f} MB, above the {self.max_size_mb:.0f} MB inline limit",
                path=path,
            )

        data = base64.b64encode(fetch_bytes()).decode("ascii")
        body = {
            "contents": [
                {
                    "parts": [
                        {"text": self.prompt},
                        {"inline_data": {"mime_type": self.mime_type, "data": data}},
                    ]
                }
            ]
        }
        payload = self._post(body, path)
        return self._response_text(payload, path)

    def _post(self, body: Dict[str, Any], path: str) -> Dict[str, Any]:
        attempt = 0
        while True:
            self.throttle.wait()
            try:
                response = self._session.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=body,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                if attempt < self.max_retries:
                    attempt += 1
                    LOGGER.warning("Gemini request failed (%s), retry %d", exc, attempt)
                    continue
                raise FatalExtractionError(f"Gemini API unreachable: {exc}", path=path) from exc

            status = response.status_code
            if status == 200:
                try:
                    return response.json()
                except ValueError as exc:
                    raise RecoverableExtractionError(
                        "Gemini returned invalid JSON", path=path, status_code=status
                    ) from exc

            if status in _RETRY_STATUS and attempt < self.max_retries:
                attempt += 1
                LOGGER.warning("Gemini server error %s, retry %d", status, attempt)
                continue

            detail = self._error_detail(response)
            if status in _FATAL_STATUS or status in _RETRY_STATUS:
                raise FatalExtractionError(detail, path=path, status_code=status)
            if "API key" in detail:
                raise FatalExtractionError(detail, path=path, status_code=status)
            raise RecoverableExtractionError(detail, path=path, status_code=status)

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        """Best-effort message from an error body of any shape."""
        fallback = f"Gemini request failed with status {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return response.text or fallback

        if isinstance(body, list):
            body = body[0] if body else {}
        if not isinstance(body, dict):
            return str(body) or fallback
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or fallback)
        if error:
            return str(error)
        return fallback

    @staticmethod
    def _response_text(payload: Dict[str, Any], path: str) -> str:
        block_reason = payload.get("promptFeedback", {}).get("blockReason")
        if block_reason:
            raise RecoverableExtractionError(f"Request blocked: {block_reason}", path=path)

        candidates = payload.get("candidates") or []
        if not candidates:
            raise RecoverableExtractionError("Gemini returned no candidates", path=path)

        parts = candidates[0].get("content", {}).get("parts", [])
        text = "".join(part.get("text", "") for part in parts).strip()
        if not text:
            raise RecoverableExtractionError("Gemini returned an empty response", path=path)
        return text
