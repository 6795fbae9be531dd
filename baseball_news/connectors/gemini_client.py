"""Gemini REST client used as the default generation backend."""

import logging
from typing import Any

import requests

from baseball_news.config.settings import ConfigurationError
from baseball_news.connectors.generation_backend import (
    TRANSIENT_STATUS_CODES,
    BackendError,
    TransientBackendError,
)


logger = logging.getLogger(__name__)


GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiClient:
    """Client for the Gemini ``generateContent`` endpoint.

    Rate-limit and overload responses (429/503), timeouts and dropped
    connections raise TransientBackendError so callers can retry; any other
    non-2xx response raises BackendError. Retrying is left to the caller.

    Attributes:
        model: Gemini model name
        timeout: Request timeout in seconds
        temperature: Sampling temperature
    """

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-3-flash-preview",
        timeout: float = 600.0,
        temperature: float = 0.2,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        self._api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self._session = session or requests.Session()

    @property
    def endpoint(self) -> str:
        return GEMINI_ENDPOINT.format(model=self.model)

    def generate_text(self, prompt: str) -> str:
        """Send one prompt and return the concatenated text parts.

        Returns:
            Response text; "" when the model produced no text

        Raises:
            TransientBackendError: On 429/503, timeout or connection failure
            BackendError: On other HTTP errors or an unreadable response body
        """
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": self.temperature},
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self._api_key,
        }

        logger.debug(f"Sending generation request to Gemini model '{self.model}'")

        try:
            response = self._session.post(
                self.endpoint,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise TransientBackendError(
                f"Gemini request timed out after {self.timeout} seconds"
            ) from e
        except requests.ConnectionError as e:
            raise TransientBackendError(f"Gemini connection failed: {e}") from e
        except requests.RequestException as e:
            raise BackendError(f"Gemini request failed: {e}") from e

        if response.status_code in TRANSIENT_STATUS_CODES:
            raise TransientBackendError(
                f"Gemini API error: {response.status_code} {response.text[:300]}",
                status_code=response.status_code,
            )

        if not response.ok:
            raise BackendError(
                f"Gemini API error: {response.status_code} {response.text[:300]}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(f"Gemini returned a non-JSON body: {e}") from e

        return _extract_text(data)


def _extract_text(data: Any) -> str:
    """Join the text parts of the first candidate."""
    if not isinstance(data, dict):
        return ""

    candidates = data.get("candidates") or []
    if not candidates:
        return ""

    content = (candidates[0] or {}).get("content") or {}
    parts = content.get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
