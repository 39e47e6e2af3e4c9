import os
from typing import List, Optional

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)


def _parse_bool(env_var: str, default: bool) -> bool:
    value = os.getenv(env_var)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in ("true", "1", "yes", "on"):
        return True
    if normalized in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"{env_var} environment variable must be 'true' or 'false', got '{value}'.")


class Settings:
    """Application configuration settings loaded from environment variables."""

    # --- New Relic Settings ---
    NEWRELIC_CONFIG_FILE: Optional[str] = None
    NEWRELIC_ENVIRONMENT: Optional[str] = None

    # --- Agent Getters ---
    def get_enabled(self) -> bool:
        """Returns whether the bridge talks to the real agent at all."""
        return _parse_bool("NEWRELIC_ENABLED", True)

    def get_config_file(self) -> Optional[str]:
        """Returns the path to the agent's newrelic.ini, if set."""
        return os.getenv("NEWRELIC_CONFIG_FILE") or None

    def get_environment(self) -> Optional[str]:
        """Returns the newrelic.ini environment section to load, if set."""
        return os.getenv("NEWRELIC_ENVIRONMENT") or None

    def get_log_interactions(self) -> bool:
        return _parse_bool("NEWRELIC_LOG_INTERACTIONS", False)

    # --- Response Instrumentation Getters ---
    def get_instrument(self) -> bool:
        """Returns whether browser timing snippets are injected into HTML responses."""
        return _parse_bool("NEWRELIC_INSTRUMENT", True)

    def get_end_transaction_on_cache_hit(self) -> bool:
        return _parse_bool("NEWRELIC_END_TRANSACTION_ON_CACHE_HIT", False)

    def get_cache_status_header(self) -> str:
        """Returns the response header inspected for cache hits."""
        return os.getenv("NEWRELIC_CACHE_STATUS_HEADER", "X-Cache")

    # --- Transaction Getters ---
    def get_ignored_paths(self) -> List[str]:
        """Returns the comma-separated NEWRELIC_IGNORED_PATHS as a list."""
        raw = os.getenv("NEWRELIC_IGNORED_PATHS", "")
        return [path.strip() for path in raw.split(",") if path.strip()]

    def get_transaction_naming(self) -> str:
        """Returns the name of the transaction naming strategy."""
        return os.getenv("NEWRELIC_TRANSACTION_NAMING", "uri").lower()

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    # --- Server Settings ---
    def get_app_host(self, default: str = "0.0.0.0") -> str:
        return os.getenv("APP_HOST", default)

    def get_app_port(self, default: int = 8000) -> int:
        """Returns the port uvicorn binds to."""
        port_str = os.getenv("APP_PORT")
        if port_str is None:
            return default
        try:
            return int(port_str)
        except ValueError:
            raise ValueError("APP_PORT environment variable must be an integer.")

    def get_app_reload(self, default: bool = False) -> bool:
        return _parse_bool("APP_RELOAD", default)
