from __future__ import annotations

import os
import time
from dataclasses import dataclass

import requests

from config import _env_float
from logging_utils import get_logger
from settings import SETTINGS

logger = get_logger(__name__)


SDN_FILE = "SDN.CSV"
ALT_FILE = "ALT.CSV"
ADD_FILE = "ADD.CSV"


class OfacApiError(RuntimeError):
    def __init__(self, message: str, *, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass(frozen=True)
class OfacResponse:
    url: str
    status_code: int
    content: bytes
    content_type: str | None

    def text(self, encoding: str | None = None) -> str:
        # OFAC exports are UTF-8 with the odd Windows-1252 byte; never fail on them.
        return self.content.decode(encoding or "utf-8", errors="replace")


def _safe_preview_bytes(data: bytes | None, *, limit: int = 500) -> str:
    """Log-safe preview of a response body, truncated to `limit` bytes."""

    if not data:
        return ""
    return data[:limit].decode("utf-8", errors="replace")


def _headers_for_log(headers: dict[str, str]) -> dict[str, str]:
    """Return a redacted copy of headers for logging."""

    redacted: dict[str, str] = {}
    for k, v in (headers or {}).items():
        lk = str(k).lower()
        if (
            lk in {"authorization", "x-api-key", "api-key"}
            or "token" in lk
            or "secret" in lk
        ):
            redacted[str(k)] = "<redacted>"
        else:
            redacted[str(k)] = str(v)
    return redacted


def _ofac_user_agent() -> str:
    """Resolve User-Agent for OFAC requests.

    The Sanctions List Service can 403 requests without a descriptive UA.

    Configure via $OFAC_USER_AGENT or:
      SETTINGS["OFAC_USER_AGENT"] = "AppName/1.0 (contact: you@example.com)"
    """

    ua = os.getenv("OFAC_USER_AGENT") or SETTINGS.get("OFAC_USER_AGENT")
    if isinstance(ua, str) and ua.strip():
        return ua.strip()
    return "sdn-openapi/1.0 (contact: unset)"


def _fetch_timeout() -> float:
    """Per-request timeout: $OFAC_FETCH_TIMEOUT_SECONDS, else SETTINGS."""

    return _env_float(
        "OFAC_FETCH_TIMEOUT_SECONDS",
        float(SETTINGS.get("OFAC_FETCH_TIMEOUT_SECONDS", 60.0)),
    )


def _export_base() -> str:
    return str(SETTINGS["OFAC_EXPORT_BASE"]).rstrip("/")


def export_url(file_name: str, *, base_url: str | None = None) -> str:
    base = (base_url or _export_base()).rstrip("/")
    return f"{base}/{file_name.lstrip('/')}"


def _sleep_backoff(
    attempt_index: int, *, base_seconds: float = 0.5, cap_seconds: float = 8.0
) -> None:
    # Basic exponential backoff: 0.5, 1, 2 ... capped
    delay = min(base_seconds * (2**attempt_index), cap_seconds)
    time.sleep(delay)


def _request(
    *,
    url: str,
    session: requests.Session | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float | None = None,
    max_attempts: int = 1,
) -> OfacResponse:
    """HTTP GET with a User-Agent and a timeout on every attempt.

    Defaults to a single attempt; callers that want retries on 429/5xx or
    connection errors pass `max_attempts`.
    """

    if max_attempts <= 0:
        raise ValueError("max_attempts must be >= 1")

    s = session or requests.Session()
    timeout = float(timeout_seconds if timeout_seconds is not None else _fetch_timeout())

    merged_headers = {"User-Agent": _ofac_user_agent(), "Accept-Encoding": "gzip"}
    if headers:
        merged_headers.update(headers)

    for attempt in range(max_attempts):
        try:
            resp = s.get(url, headers=merged_headers, timeout=timeout)
        except requests.RequestException as e:
            logger.warning(
                "OFAC request failed | url=%s attempt=%s/%s err=%s",
                url,
                attempt + 1,
                max_attempts,
                e,
            )
            if attempt < max_attempts - 1:
                _sleep_backoff(attempt)
                continue
            raise OfacApiError(
                f"OFAC fetch failed :: {url} :: {e}", url=url
            ) from e

        if 200 <= resp.status_code < 300:
            return OfacResponse(
                url=url,
                status_code=resp.status_code,
                content=resp.content,
                content_type=resp.headers.get("Content-Type"),
            )

        body_preview = _safe_preview_bytes(getattr(resp, "content", b""))
        logger.warning(
            "OFAC non-2xx response | status=%s url=%s attempt=%s/%s content_type=%s headers=%s body_preview=%s",
            resp.status_code,
            url,
            attempt + 1,
            max_attempts,
            resp.headers.get("Content-Type"),
            _headers_for_log(merged_headers),
            body_preview,
        )

        if resp.status_code in (429, 500, 502, 503, 504) and attempt < max_attempts - 1:
            _sleep_backoff(attempt)
            continue

        raise OfacApiError(
            f"OFAC fetch failed {resp.status_code} :: {url}\n{body_preview}",
            url=url,
            status_code=resp.status_code,
        )

    raise OfacApiError(f"OFAC fetch failed :: {url}", url=url)


def fetch_export_text(
    file_name: str,
    *,
    base_url: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float | None = None,
    max_attempts: int = 1,
) -> str:
    """Fetch one export file (e.g. "SDN.CSV") from the Sanctions List Service."""

    url = export_url(file_name, base_url=base_url)
    r = _request(
        url=url,
        session=session,
        headers={"Accept": "text/csv,text/plain,*/*"},
        timeout_seconds=timeout_seconds,
        max_attempts=max_attempts,
    )
    return r.text()
