"""
SQLAlchemy models for the legacy gallery store.
All database models inherit from Base (declarative base).
"""
import uuid

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Uuid
from sqlalchemy.sql import func
from app.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Client(Base):
    """
    Client (event) record.
    The client's public gallery is addressed by its slug.
    """
    __tablename__ = "clients"

    id = Column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    event_date = Column(Date, nullable=True)
    subheading = Column(String, nullable=True)
    status = Column(String, nullable=True, default="ACTIVE")
    header_media_url = Column(String, nullable=True)
    header_media_type = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Photo(Base):
    """
    Photo belonging to a client gallery.
    Stores the Cloudinary delivery URL and public ID of the asset.
    """
    __tablename__ = "photos"

    id = Column(Uuid(as_uuid=False), primary_key=True, default=_new_id)
    client_id = Column(Uuid(as_uuid=False), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    # Legacy rows may lack a URL; they are skipped by downloads
    url = Column(String, nullable=True)
    filename = Column(String, nullable=True)
    public_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
