import logging
import os

from settings import SETTINGS


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    try:
        return float(v)
    except ValueError:
        return default


class Config:
    """Environment overrides applied on top of ``settings.py``."""

    SECRET_KEY = os.getenv("SECRET_KEY", str(SETTINGS["SECRET_KEY"]))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", str(SETTINGS["LOG_LEVEL"])).upper()

    # OFAC fetch settings ($OFAC_USER_AGENT, $OFAC_FETCH_TIMEOUT_SECONDS) are
    # resolved per request in utils/ofac_client.py; the web app never fetches.

    # Read path
    DATASET_CACHE_TTL_SECONDS: float = _env_float(
        "DATASET_CACHE_TTL_SECONDS", float(SETTINGS["DATASET_CACHE_TTL_SECONDS"])
    )

    # Create the blob table on app startup (off by default, like a migration step).
    INIT_DB_ON_STARTUP: bool = _env_bool("INIT_DB_ON_STARTUP", False)

    @classmethod
    def as_flask_overrides(cls) -> dict[str, object]:
        """Return only the values that differ from ``settings.py`` defaults."""

        overrides: dict[str, object] = {}
        for key in (
            "SECRET_KEY",
            "LOG_LEVEL",
            "DATASET_CACHE_TTL_SECONDS",
        ):
            value = getattr(cls, key)
            if value != SETTINGS.get(key):
                overrides[key] = value
        return overrides


def configure_logging(app_logger: logging.Logger, level_name: str) -> None:
    """Configure application logging in a simple, predictable way."""

    level = getattr(logging, level_name, logging.INFO)

    # Avoid duplicate handlers (e.g., in tests or reload scenarios)
    if app_logger.handlers:
        app_logger.setLevel(level)
        return

    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handler.setFormatter(formatter)

    app_logger.addHandler(handler)
    app_logger.setLevel(level)
