from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, Integer, LargeBinary, String

from db import Base
from utils.time_utils import utcnow


class BlobEntry(Base):
    """Opaque key/value blobs (the compressed dataset and its metadata record).

    - key: stable blob name, e.g. 'dataset.json.gz' or 'meta.json'
    - value: raw bytes; JSON records are stored UTF-8 encoded
    - content_type: 'application/gzip' / 'application/json'
    - blob_metadata: small JSON annotations written with the blob (e.g. fetchedAt)
    - size_bytes: len(value), kept for quick inspection
    """

    __tablename__ = "blob_entries"

    key = Column(String, primary_key=True)
    value = Column(LargeBinary, nullable=False)
    content_type = Column(String, nullable=False, default="application/octet-stream")
    blob_metadata = Column("metadata", JSON, nullable=True)
    size_bytes = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
