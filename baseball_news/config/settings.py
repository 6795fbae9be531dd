"""Configuration settings for the baseball news pipeline."""

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv


SUPPORTED_BACKENDS = ("gemini", "ollama")

FIELD_NAMES = ("header", "subheader", "summary", "body")


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass(frozen=True)
class FieldLimits:
    """Length bounds (in characters) for generated article text fields.

    Only the maxima are enforced; generated text longer than the maximum is
    truncated. The minima are passed to the generation backend as targets.
    """

    header: tuple[int, int] = (30, 50)
    subheader: tuple[int, int] = (35, 60)
    summary: tuple[int, int] = (120, 300)
    body: tuple[int, int] = (100, 1000)

    def maximum(self, field_name: str) -> int:
        return getattr(self, field_name)[1]

    def minimum(self, field_name: str) -> int:
        return getattr(self, field_name)[0]

    def problems(self) -> list[str]:
        errors: list[str] = []
        for name in FIELD_NAMES:
            low, high = getattr(self, name)
            if high < 1:
                errors.append(f"{name} maximum length must be at least 1")
            elif high < low:
                errors.append(f"{name} maximum length must not be below its minimum ({low})")
        return errors


@dataclass
class Settings:
    """Configuration settings for the baseball news pipeline.

    Attributes:
        generation_backend: Which text generation backend to use ("gemini" or "ollama")
        gemini_api_key: API key for the Gemini backend
        gemini_model: Gemini model name
        ollama_model: Ollama model name
        ollama_host: Ollama host URL, or empty for the library default
        database_url: Postgres DSN; empty selects the in-memory repository
        seed_limit: Number of URLs discovered for a seed run
        sync_limit: Number of URLs discovered for a sync run
        generation_batch_size: URLs per generation request
        generation_timeout_seconds: Timeout for one generation request
        generation_max_retries: Extra attempts for rate-limited/overloaded requests
        generation_backoff_seconds: Base delay, multiplied by the attempt index
        batch_delay_seconds: Pause between batches once articles were produced
        single_request_delay_seconds: Pause between single-URL escalation requests
        request_timeout_seconds: Timeout for listing page requests
        max_retries: Maximum attempts for listing page requests
        max_listing_pages: Upper bound on pages read from a paginated listing
        default_timezone: Time zone assumed for naive article timestamps
        run_log_dir: Directory for JSON run logs; empty disables them
        field_limits: Length bounds for generated text fields
    """

    generation_backend: str = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-3-flash-preview"
    ollama_model: str = "llama4:scout"
    ollama_host: str = ""
    database_url: str = ""
    seed_limit: int = 10
    sync_limit: int = 5
    generation_batch_size: int = 5
    generation_timeout_seconds: float = 600.0
    generation_max_retries: int = 2
    generation_backoff_seconds: float = 0.8
    batch_delay_seconds: float = 2.0
    single_request_delay_seconds: float = 1.0
    request_timeout_seconds: float = 15.0
    max_retries: int = 3
    max_listing_pages: int = 10
    default_timezone: str = "Asia/Tokyo"
    run_log_dir: str = ""
    field_limits: FieldLimits = field(default_factory=FieldLimits)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid.
        """
        errors: list[str] = []

        if self.generation_backend not in SUPPORTED_BACKENDS:
            errors.append(
                f"generation_backend must be one of {', '.join(SUPPORTED_BACKENDS)}, "
                f"got '{self.generation_backend}'"
            )

        if self.generation_backend == "gemini" and not self.gemini_api_key:
            errors.append("GEMINI_API_KEY is not set")

        if self.seed_limit < 1:
            errors.append("seed_limit must be at least 1")

        if self.sync_limit < 1:
            errors.append("sync_limit must be at least 1")

        if self.generation_batch_size < 1:
            errors.append("generation_batch_size must be at least 1")

        if self.generation_timeout_seconds <= 0.0:
            errors.append("generation_timeout_seconds must be positive")

        if self.generation_max_retries < 0:
            errors.append("generation_max_retries must be non-negative")

        if self.generation_backoff_seconds < 0.0:
            errors.append("generation_backoff_seconds must be non-negative")

        if self.batch_delay_seconds < 0.0:
            errors.append("batch_delay_seconds must be non-negative")

        if self.single_request_delay_seconds < 0.0:
            errors.append("single_request_delay_seconds must be non-negative")

        if self.request_timeout_seconds <= 0.0:
            errors.append("request_timeout_seconds must be positive")

        if self.max_retries < 1:
            errors.append("max_retries must be at least 1")

        if self.max_listing_pages < 1:
            errors.append("max_listing_pages must be at least 1")

        errors.extend(self.field_limits.problems())

        if errors:
            raise ConfigurationError("; ".join(errors))


def _parse_float(value: str | None, default: float) -> float:
    """Parse a string to float, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int) -> int:
    """Parse a string to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _load_field_limits() -> FieldLimits:
    """Apply ``<FIELD>_MAX_LENGTH`` overrides; a minimum never exceeds its maximum."""
    defaults = FieldLimits()
    bounds = {}
    for name in FIELD_NAMES:
        low, high = getattr(defaults, name)
        high = _parse_int(os.getenv(f"{name.upper()}_MAX_LENGTH"), high)
        bounds[name] = (min(low, high), high)
    return FieldLimits(**bounds)


def load_settings(env_path: str | Path | None = None, validate: bool = True) -> Settings:
    """Load settings from environment variables and .env file.

    Args:
        env_path: Optional path to .env file. If None, searches for .env
                  in current directory and parent directories.
        validate: If True, validate settings after loading.

    Returns:
        Settings instance with loaded configuration.

    Raises:
        ConfigurationError: If validate=True and configuration is invalid.
    """
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()

    settings = Settings(
        generation_backend=os.getenv("GENERATION_BACKEND", "gemini").strip().lower(),
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-3-flash-preview"),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama4:scout"),
        ollama_host=os.getenv("OLLAMA_HOST", ""),
        database_url=os.getenv("DATABASE_URL", ""),
        seed_limit=_parse_int(os.getenv("SEED_LIMIT"), 10),
        sync_limit=_parse_int(os.getenv("SYNC_LIMIT"), 5),
        generation_batch_size=_parse_int(os.getenv("GENERATION_BATCH_SIZE"), 5),
        generation_timeout_seconds=_parse_float(
            os.getenv("GENERATION_TIMEOUT_SECONDS"), 600.0
        ),
        generation_max_retries=_parse_int(os.getenv("GENERATION_MAX_RETRIES"), 2),
        generation_backoff_seconds=_parse_float(
            os.getenv("GENERATION_BACKOFF_SECONDS"), 0.8
        ),
        batch_delay_seconds=_parse_float(os.getenv("BATCH_DELAY_SECONDS"), 2.0),
        single_request_delay_seconds=_parse_float(
            os.getenv("SINGLE_REQUEST_DELAY_SECONDS"), 1.0
        ),
        request_timeout_seconds=_parse_float(
            os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0
        ),
        max_retries=_parse_int(os.getenv("MAX_RETRIES"), 3),
        max_listing_pages=_parse_int(os.getenv("MAX_LISTING_PAGES"), 10),
        default_timezone=os.getenv("DEFAULT_TIMEZONE", "Asia/Tokyo"),
        run_log_dir=os.getenv("RUN_LOG_DIR", ""),
        field_limits=_load_field_limits(),
    )

    if validate:
        settings.validate()

    return settings
