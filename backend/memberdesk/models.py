"""SQLAlchemy models."""
from sqlalchemy import (
    Boolean, Column, String, Integer, DateTime, JSON, Index, UniqueConstraint
)
from sqlalchemy.sql import func
from .database import Base


class StoredDocument(Base):
    """One document of a named collection, payload kept as JSON."""
    __tablename__ = "documents"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    collection = Column(String(100), nullable=False)
    doc_id = Column(String(128), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),
        Index("idx_documents_collection_doc_id", "collection", "doc_id"),
    )


class IdentityAccount(Base):
    """Account of the local identity provider (members and admins)."""
    __tablename__ = "identity_accounts"

    uid = Column(String(128), primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=True)
    photo_url = Column(String(2048), nullable=True)
    disabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
