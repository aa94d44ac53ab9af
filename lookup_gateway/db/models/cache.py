from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, LargeBinary, String
from lookup_gateway.db.base import Base


def _utcnow():
    return datetime.now(timezone.utc)


class StoredObject(Base):
    __tablename__ = "stored_objects"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(1024), unique=True, index=True, nullable=False)
    content_type = Column(String(255), nullable=False)
    payload = Column(LargeBinary, nullable=False)
    size = Column(Integer, nullable=False, default=0)
    # "metadata" is reserved on declarative classes
    object_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
