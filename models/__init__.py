"""ORM models.

All models share the declarative `Base` from `db.py`; importing this package
registers every table on `Base.metadata`, so `Base.metadata.create_all(engine)`
builds a complete schema (tests rely on this).
"""

from db import Base

from models.blob_entries import BlobEntry

__all__ = ["Base", "BlobEntry"]
