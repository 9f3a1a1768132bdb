"""deskvfs record store: SQLAlchemy tables and the async RecordStore."""

from deskvfs.db.models import EntryRecord, MetaRecord
from deskvfs.db.session import RecordStore

__all__ = ["EntryRecord", "MetaRecord", "RecordStore"]
