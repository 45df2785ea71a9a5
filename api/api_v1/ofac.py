from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from api.schemas.api_responses import (
    DATASET_UNAVAILABLE,
    MISSING_PARAMETER,
    NOT_FOUND,
    ApiMeta,
    EntityData,
    SearchData,
    SearchResult,
    fail,
    ok,
)
from logging_utils import get_logger
from utils.blob_store import BlobStore
from utils.dataset_cache import DatasetCache
from utils.ingest_metadata import META_KEY

logger = get_logger(__name__)

ofac_v1_bp = Blueprint("ofac_v1", __name__)

# app.extensions keys
DATASET_CACHE_EXT = "ofac_dataset_cache"
BLOB_STORE_EXT = "ofac_blob_store"


def _dataset_cache() -> DatasetCache:
    return current_app.extensions[DATASET_CACHE_EXT]


def _blob_store() -> BlobStore:
    return current_app.extensions[BLOB_STORE_EXT]


def _request_meta() -> ApiMeta:
    return ApiMeta(request_id=request.headers.get("X-Request-ID"))


def _json(payload: dict, status: int = 200, *, max_age: int | None = None):
    resp = jsonify(payload)
    resp.status_code = status
    if max_age is not None and status == 200:
        resp.headers["Cache-Control"] = f"public, max-age={int(max_age)}"
    return resp


def parse_limit(raw: str | None, *, default: int, maximum: int) -> int:
    """Parse `?limit=`; blank or non-numeric -> default, then clamp to [1, maximum]."""

    try:
        limit = int((raw or "").strip() or default)
    except ValueError:
        limit = default
    return max(1, min(limit, maximum))


@ofac_v1_bp.route("/search", methods=["GET"])
def search():
    """Fuzzy search over entity names and aliases.

    Query params:
    - q: search text, required
    - limit: optional (default 20, max 50)
    """

    q = (request.args.get("q") or "").strip()
    if not q:
        return _json(
            fail(
                "Missing ?q=",
                code=MISSING_PARAMETER,
                details={"param": "q"},
                meta=_request_meta(),
            ),
            400,
        )

    limit = parse_limit(
        request.args.get("limit"),
        default=int(current_app.config.get("SEARCH_DEFAULT_LIMIT", 20)),
        maximum=int(current_app.config.get("SEARCH_MAX_LIMIT", 50)),
    )

    hits = _dataset_cache().search(q, limit=limit)
    results = [SearchResult(**hit.entity.search_item(hit.score)) for hit in hits]

    return _json(
        ok(SearchData(q=q, count=len(results), results=results), meta=_request_meta()),
        max_age=30,
    )


@ofac_v1_bp.route("/entities", methods=["GET"])
@ofac_v1_bp.route("/entities/<uid>", methods=["GET"])
def get_entity(uid: str | None = None):
    """Full consolidated record for one entity.

    The uid comes from the path, or from `?uid=` on the bare collection URL.
    """

    uid = (uid or request.args.get("uid") or "").strip()
    if not uid:
        return _json(
            fail(
                "Missing :uid",
                code=MISSING_PARAMETER,
                details={"param": "uid"},
                meta=_request_meta(),
            ),
            400,
        )

    entity = _dataset_cache().get_entity(uid)
    if entity is None:
        return _json(
            fail(
                "Not found",
                code=NOT_FOUND,
                details={"uid": uid},
                meta=_request_meta(),
            ),
            404,
        )

    return _json(
        ok(EntityData(entity=entity.as_dict()), meta=_request_meta()), max_age=300
    )


@ofac_v1_bp.route("/meta", methods=["GET"])
def get_meta():
    """Metadata record of the last successful update run."""

    meta = _blob_store().get_json(META_KEY)
    if meta is None:
        return _json(
            fail(
                "No dataset yet. Run the OFAC update job first.",
                code=DATASET_UNAVAILABLE,
                meta=_request_meta(),
            ),
            503,
        )

    return _json(ok(meta, meta=_request_meta()), max_age=60)
