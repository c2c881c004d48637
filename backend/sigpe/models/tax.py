from __future__ import annotations
from datetime import date
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Date, DateTime, ForeignKey, func
from .authz import Base


class Tax(Base):
    """Hunting levy (e.g. per warthog taken); append-only."""
    __tablename__ = 'taxes'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tax_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    hunter_id: Mapped[int] = mapped_column(ForeignKey('hunters.id'), nullable=False, index=True)
    # Null for external hunters without a local permit
    permit_id: Mapped[Optional[int]] = mapped_column(ForeignKey('permits.id'), nullable=True, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    animal_type: Mapped[str] = mapped_column(String(64), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(128), nullable=False)
    external_hunter_name: Mapped[Optional[str]] = mapped_column(String(128))
    external_hunter_region: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
