"""App settings.

Flask loads this module on startup via ``app.config.from_pyfile(...)``.

Environment overrides live in ``config.Config``; this file only holds defaults.
"""

# Single source of truth for app configuration.
SETTINGS: dict[str, object] = {
    # Flask
    "SECRET_KEY": "dev-not-secret",
    # Logging
    "LOG_LEVEL": "INFO",
    # OFAC Sanctions List Service
    # SLS answers 403 to requests without a descriptive User-Agent.
    "OFAC_USER_AGENT": "sdn-openapi/1.0 (set SETTINGS['OFAC_USER_AGENT'] to your@email.com)",
    "OFAC_EXPORT_BASE": "https://sanctionslistservice.ofac.treas.gov/api/PublicationPreview/exports",
    "OFAC_FETCH_TIMEOUT_SECONDS": 60.0,
    # Read path
    "DATASET_CACHE_TTL_SECONDS": 600.0,
    "SEARCH_DEFAULT_LIMIT": 20,
    "SEARCH_MAX_LIMIT": 50,
    # 0 = exact match only, 1 = match anything.
    "SEARCH_THRESHOLD": 0.35,
}

SETTINGS.setdefault(
    "OFAC_USER_AGENT",
    "sdn-openapi/1.0 (local dev; contact: unset)",
)

# Optional convenience exports (Flask only picks up upper-case module names).
SECRET_KEY = SETTINGS["SECRET_KEY"]
LOG_LEVEL = SETTINGS["LOG_LEVEL"]
OFAC_USER_AGENT = SETTINGS["OFAC_USER_AGENT"]
OFAC_EXPORT_BASE = SETTINGS["OFAC_EXPORT_BASE"]
OFAC_FETCH_TIMEOUT_SECONDS = SETTINGS["OFAC_FETCH_TIMEOUT_SECONDS"]
DATASET_CACHE_TTL_SECONDS = SETTINGS["DATASET_CACHE_TTL_SECONDS"]
SEARCH_DEFAULT_LIMIT = SETTINGS["SEARCH_DEFAULT_LIMIT"]
SEARCH_MAX_LIMIT = SETTINGS["SEARCH_MAX_LIMIT"]
SEARCH_THRESHOLD = SETTINGS["SEARCH_THRESHOLD"]
