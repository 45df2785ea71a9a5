import os
import time
from typing import Callable

from flask import Flask, jsonify, request

from api.api_v1.ofac import BLOB_STORE_EXT, DATASET_CACHE_EXT
from api.blueprint import create_api_blueprint
from api.schemas.api_responses import (
    DATASET_CORRUPT,
    DATASET_UNAVAILABLE,
    INTERNAL_ERROR,
    METHOD_NOT_ALLOWED,
    NOT_FOUND,
    fail,
)
from config import Config, configure_logging
from logging_utils import get_logger, set_log_level
from utils.blob_store import BlobStore
from utils.dataset_cache import DatasetCache, DatasetUnavailableError
from utils.dataset_codec import DatasetDecodeError


def create_app(
    *,
    store: BlobStore | None = None,
    dataset_cache: DatasetCache | None = None,
    clock: Callable[[], float] | None = None,
) -> Flask:
    app = Flask(__name__)

    # Defaults from file, then environment overrides.
    app.config.from_pyfile("settings.py")
    app.config.update(Config.as_flask_overrides())

    # Unified app logging (UTC timestamps, per-file logs, daily rotation);
    # re-level module loggers that were created at import time.
    set_log_level(app.config.get("LOG_LEVEL", "INFO"))
    logger = get_logger(__name__)

    configure_logging(app.logger, app.config.get("LOG_LEVEL", "INFO"))

    # One blob store and one dataset cache per app; handlers read them from app.extensions.
    store = store or BlobStore()
    if dataset_cache is None:
        cache_kwargs = {}
        if clock is not None:
            cache_kwargs["clock"] = clock
        dataset_cache = DatasetCache(
            store,
            ttl_seconds=float(app.config.get("DATASET_CACHE_TTL_SECONDS", 600.0)),
            search_threshold=float(app.config.get("SEARCH_THRESHOLD", 0.35)),
            **cache_kwargs,
        )
    app.extensions[BLOB_STORE_EXT] = store
    app.extensions[DATASET_CACHE_EXT] = dataset_cache

    # --- slow request logging (opt-in by threshold; default 250ms) ---
    # Set to "0" to disable (or keep it low temporarily when investigating perf).
    slow_ms = int(os.getenv("SLOW_REQUEST_MS", "250") or "250")

    @app.before_request
    def _start_timer():
        if slow_ms > 0:
            request.environ["_req_start_ns"] = time.perf_counter_ns()

    @app.after_request
    def _log_slow_requests(resp):
        if slow_ms <= 0:
            return resp

        start_ns = request.environ.get("_req_start_ns")
        if not start_ns:
            return resp

        elapsed_ms = (time.perf_counter_ns() - int(start_ns)) / 1_000_000.0
        if elapsed_ms >= slow_ms:
            # Keep it compact and stable for grepping.
            logger.warning(
                "SLOW_REQUEST ms=%.1f status=%s method=%s path=%s query=%s",
                elapsed_ms,
                getattr(resp, "status_code", "?"),
                request.method,
                request.path,
                request.query_string.decode("utf-8", errors="replace"),
            )
        return resp

    app.register_blueprint(create_api_blueprint())

    # Error handlers
    @app.errorhandler(DatasetUnavailableError)
    def dataset_unavailable(err):
        return jsonify(fail(str(err), code=DATASET_UNAVAILABLE)), 503

    @app.errorhandler(DatasetDecodeError)
    def dataset_corrupt(err):
        logger.error("Stored dataset could not be decoded | err=%s", err)
        return jsonify(fail("Stored dataset is unreadable", code=DATASET_CORRUPT)), 500

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify(fail("Not found", code=NOT_FOUND, details={"path": request.path})), 404

    @app.errorhandler(405)
    def method_not_allowed(_err):
        return jsonify(fail("Method not allowed", code=METHOD_NOT_ALLOWED)), 405

    @app.errorhandler(500)
    def server_error(_err):
        logger.exception("Unhandled server error")
        return jsonify(fail("Internal server error", code=INTERNAL_ERROR)), 500

    # Optional: create the blob table on startup only when explicitly requested.
    if Config.INIT_DB_ON_STARTUP:
        logger.info("INIT_DB_ON_STARTUP=1; ensuring blob table exists")
        store.ensure_schema()

    return app


# NOTE: Do not instantiate the Flask app at import time.
# Tests patch the DB engine/sessionmaker before calling create_app().
app: Flask | None = None


if __name__ == "__main__":
    app = create_app()
    get_logger(__name__).info("Starting Flask app")
    app.run(debug=True, use_reloader=False)
