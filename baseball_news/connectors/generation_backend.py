"""Generation backend protocol, error types and factory."""

from typing import Protocol, runtime_checkable

from baseball_news.config.settings import ConfigurationError, Settings


# Rate limited / overloaded
TRANSIENT_STATUS_CODES = frozenset({429, 503})


class BackendError(Exception):
    """Raised when a generation request fails.

    Attributes:
        message: Description of the failure
        status_code: HTTP status returned by the backend, if any
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class TransientBackendError(BackendError):
    """Raised for failures worth retrying: rate limits, overload, timeouts."""

    pass


class BackendConnectionError(BackendError):
    """Raised when the backend cannot be reached at all.

    Attributes:
        troubleshooting: Instructions for resolving the connection issue
    """

    def __init__(self, message: str, troubleshooting: str = "") -> None:
        self.troubleshooting = troubleshooting
        super().__init__(f"{message}\n{troubleshooting}" if troubleshooting else message)


class GenerationFailedError(BackendError):
    """Raised when every generation request of a run ended in a backend error."""

    pass


@runtime_checkable
class GenerationBackend(Protocol):
    """A text generation service: one instruction in, free-form text out."""

    @property
    def name(self) -> str:
        """Return a short identifier for logs."""
        ...

    def generate_text(self, prompt: str) -> str:
        """Send one instruction and return the raw response text.

        Raises:
            TransientBackendError: On rate limiting, overload or timeout.
            BackendError: On any other failure.
        """
        ...


def build_backend(settings: Settings) -> GenerationBackend:
    """Create the generation backend selected by ``settings.generation_backend``.

    Raises:
        ConfigurationError: If the backend is unknown or misconfigured.
    """
    if settings.generation_backend == "gemini":
        from baseball_news.connectors.gemini_client import GeminiClient

        return GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.generation_timeout_seconds,
        )

    if settings.generation_backend == "ollama":
        from baseball_news.connectors.ollama_client import OllamaClient

        return OllamaClient(
            model=settings.ollama_model,
            host=settings.ollama_host or None,
            timeout=settings.generation_timeout_seconds,
        )

    raise ConfigurationError(f"Unknown generation backend '{settings.generation_backend}'")
