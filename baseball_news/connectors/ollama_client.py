"""Ollama client used as the local generation backend."""

import logging

import httpx
import ollama

from baseball_news.connectors.generation_backend import (
    TRANSIENT_STATUS_CODES,
    BackendConnectionError,
    BackendError,
    TransientBackendError,
)


logger = logging.getLogger(__name__)


class OllamaClient:
    """Client for a local Ollama runtime.

    Attributes:
        model: The Ollama model name to use for generation.
        timeout: Request timeout in seconds.
        num_ctx: Context window size passed to Ollama's num_ctx parameter.

    Example:
        >>> client = OllamaClient(model="llama4:scout")
        >>> text = client.generate_text("Summarize https://npb.jp/news/detail/...")
    """

    name = "ollama"

    def __init__(
        self,
        model: str = "llama4:scout",
        host: str | None = None,
        timeout: float = 600.0,
        num_ctx: int = 16384,
        temperature: float = 0.2,
    ) -> None:
        self.model = model
        self.host = host
        self.timeout = timeout
        self.num_ctx = num_ctx
        self.temperature = temperature
        self._client = ollama.Client(host=host, timeout=timeout)

    def generate_text(self, prompt: str) -> str:
        """Send a chat request to Ollama and return the response text.

        Raises:
            TransientBackendError: On 429/503 responses or timeouts.
            BackendConnectionError: If Ollama is not reachable.
            BackendError: On any other failure, including a missing model.
        """
        logger.debug(
            f"Sending chat request to model '{self.model}' with num_ctx={self.num_ctx}"
        )

        try:
            response = self._client.chat(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                options={
                    "num_ctx": self.num_ctx,
                    "temperature": self.temperature,
                },
            )
        except ollama.ResponseError as e:
            if e.status_code in TRANSIENT_STATUS_CODES:
                raise TransientBackendError(
                    f"Ollama error: {e.status_code} {e.error}", status_code=e.status_code
                ) from e
            if e.status_code == 404:
                raise BackendError(
                    f"Model '{self.model}' is not available in Ollama. "
                    f"Pull the model with: 'ollama pull {self.model}'",
                    status_code=404,
                ) from e
            raise BackendError(f"Ollama error: {e.status_code} {e.error}", status_code=e.status_code) from e
        except httpx.TimeoutException as e:
            raise TransientBackendError(
                f"Generation timed out after {self.timeout} seconds"
            ) from e
        except (ConnectionError, httpx.ConnectError) as e:
            raise BackendConnectionError(
                f"Cannot connect to Ollama: {e}",
                troubleshooting=(
                    "Ensure Ollama is running: 'ollama serve'\n"
                    f"Check if Ollama is accessible at {self.host or 'http://localhost:11434'}"
                ),
            ) from e

        if hasattr(response, "message"):
            return getattr(response.message, "content", "") or ""
        if isinstance(response, dict):
            message = response.get("message", {})
            return (message.get("content", "") if isinstance(message, dict) else str(message)) or ""
        return str(response)
