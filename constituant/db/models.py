"""
SQLAlchemy database models for Constituant.

ORM models that map to database tables with proper indexing,
constraints, and relationships.

Responsibility: Define database schema and ORM mappings
"""

from datetime import datetime
from typing import Optional, List
from sqlalchemy import (
    String, Integer, DateTime, Float, Text, JSON,
    ForeignKey, Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..models.bill import SENTINEL_THEME


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class BillModel(Base):
    """
    Database model for published bills.

    The primary key is a human-readable slug (e.g. "fr-loi-climat-2025")
    that never changes after creation.
    """

    __tablename__ = "bills"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_abstract: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_pour: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_contre: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_concerne: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    theme: Mapped[str] = mapped_column(String(100), nullable=False, default=SENTINEL_THEME, index=True)
    ai_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ai_processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    full_text_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    chamber: Mapped[str] = mapped_column(String(100), nullable=False)
    vote_datetime: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="upcoming")

    # Provenance (null for bills created by hand)
    source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    external_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    votes: Mapped[List["VoteModel"]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint('source', 'external_id', name='uq_bill_source_key'),
        Index('idx_bill_level_status', 'level', 'status'),
        CheckConstraint(
            "level IN ('eu', 'france')",
            name='ck_bill_level'
        ),
        CheckConstraint(
            "status IN ('upcoming', 'voting_now', 'completed')",
            name='ck_bill_status'
        ),
        CheckConstraint(
            'ai_confidence IS NULL OR (ai_confidence >= 0 AND ai_confidence <= 1)',
            name='ck_bill_confidence_range'
        ),
    )

    def __repr__(self) -> str:
        return f"<BillModel(id={self.id}, status={self.status})>"


class PendingBillModel(Base):
    """
    Database model for the review queue.

    One row per (source, external_id). Rows are mutable only while
    status is 'pending'; approval keeps the row and links the created bill.
    """

    __tablename__ = "pending_bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    full_text_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    level: Mapped[str] = mapped_column(String(20), nullable=False)
    chamber: Mapped[str] = mapped_column(String(100), nullable=False)
    vote_datetime: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    raw_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)

    # Classification
    theme: Mapped[str] = mapped_column(String(100), nullable=False, default=SENTINEL_THEME)
    ai_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_abstract: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_pour: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_contre: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_concerne: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    ai_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ai_processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Review audit
    fetched_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bill_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        ForeignKey('bills.id', ondelete='SET NULL'),
        nullable=True
    )

    __table_args__ = (
        UniqueConstraint('source', 'external_id', name='uq_pending_bill_source_key'),
        Index('idx_pending_bill_status_fetched', 'status', 'fetched_at'),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name='ck_pending_bill_status'
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PendingBillModel(id={self.id}, "
            f"source={self.source}, "
            f"external_id={self.external_id}, "
            f"status={self.status})>"
        )


class VoteModel(Base):
    """
    Database model for citizen votes.

    At most one row per (bill_id, voter_ip), enforced by the storage layer
    so that concurrent first votes cannot both succeed.
    """

    __tablename__ = "votes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bill_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey('bills.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    voter_ip: Mapped[str] = mapped_column(String(45), nullable=False)
    vote_type: Mapped[str] = mapped_column(String(10), nullable=False)
    voted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    bill: Mapped[BillModel] = relationship(back_populates="votes")

    __table_args__ = (
        UniqueConstraint('bill_id', 'voter_ip', name='uq_vote_bill_voter'),
        Index('idx_vote_ip_voted_at', 'voter_ip', 'voted_at'),
        Index('idx_vote_bill_voted_at', 'bill_id', 'voted_at'),
        CheckConstraint(
            "vote_type IN ('for', 'against', 'abstain')",
            name='ck_vote_type'
        ),
    )

    def __repr__(self) -> str:
        return f"<VoteModel(id={self.id}, bill_id={self.bill_id}, type={self.vote_type})>"


class ImportLogModel(Base):
    """
    Database model for tracking import runs.

    One row per (source, run); rows are never updated.
    """

    __tablename__ = "import_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Counts
    fetched: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    new: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_details: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    execution_time: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        index=True
    )

    __table_args__ = (
        Index('idx_import_log_source_created', 'source', 'created_at'),
    )

    def __repr__(self) -> str:
        return (
            f"<ImportLogModel(id={self.id}, "
            f"source={self.source}, "
            f"status={self.status})>"
        )
