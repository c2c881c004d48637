from __future__ import annotations
from datetime import date
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Date, DateTime, ForeignKey, func
from .authz import Base


class Permit(Base):
    __tablename__ = 'permits'
    # Stored status flags; the displayed status is derived (see services.permit_status)
    STATUS_ACTIVE = 'active'
    STATUS_EXPIRED = 'expired'
    STATUS_SUSPENDED = 'suspended'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_EXPIRED, STATUS_SUSPENDED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    permit_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    hunter_id: Mapped[int] = mapped_column(ForeignKey('hunters.id'), nullable=False, index=True)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)
    # Amount in CFA francs (no minor unit)
    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    type: Mapped[Optional[str]] = mapped_column(String(64))
    category_id: Mapped[Optional[str]] = mapped_column(String(64))
    receipt_number: Mapped[Optional[str]] = mapped_column(String(64))
    area: Mapped[Optional[str]] = mapped_column(String(128))
    weapons: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class NumberSequence(Base):
    """Named monotonic counter backing permit/tax number allocation."""
    __tablename__ = 'number_sequences'
    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
