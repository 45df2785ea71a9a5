"""Persisted dataset format: gzip-compressed UTF-8 JSON array of entities.

Optional fields that are `None` are omitted from the JSON objects, and a
missing key decodes back to `None`, so `decode_dataset(encode_dataset(x)) == x`.
"""

from __future__ import annotations

import gzip
import json
import zlib
from collections.abc import Sequence

from utils.ofac_entities import SanctionedEntity

DATASET_KEY = "dataset.json.gz"


class DatasetDecodeError(ValueError):
    pass


def encode_dataset(entities: Sequence[SanctionedEntity]) -> bytes:
    payload = json.dumps(
        [e.as_dict() for e in entities], ensure_ascii=False, separators=(",", ":")
    )
    # mtime=0 keeps the blob byte-identical for identical input.
    return gzip.compress(payload.encode("utf-8"), mtime=0)


def decode_dataset(blob: bytes) -> list[SanctionedEntity]:
    try:
        raw = gzip.decompress(blob).decode("utf-8")
        data = json.loads(raw)
    except (OSError, EOFError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DatasetDecodeError(f"dataset blob is not gzip JSON: {e}") from e

    if not isinstance(data, list):
        raise DatasetDecodeError(
            f"dataset blob must hold a JSON array, got {type(data).__name__}"
        )
    try:
        return [SanctionedEntity.from_dict(item) for item in data]
    except ValueError as e:
        raise DatasetDecodeError(str(e)) from e
