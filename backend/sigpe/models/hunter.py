from __future__ import annotations
from datetime import date
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Boolean, Date, DateTime, ForeignKey, func
from .authz import Base

MAJORITY_AGE = 18


class Guardian(Base):
    """Legal representative of a minor hunter."""
    __tablename__ = 'guardians'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    id_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    relationship: Mapped[str] = mapped_column(String(64), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    address: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Hunter(Base):
    __tablename__ = 'hunters'
    CATEGORY_RESIDENT = 'resident'
    CATEGORY_COUTUMIER = 'coutumier'
    CATEGORY_TOURISTE = 'touriste'
    ALL_CATEGORIES = (CATEGORY_RESIDENT, CATEGORY_COUTUMIER, CATEGORY_TOURISTE)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    id_number: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32))
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    profession: Mapped[str] = mapped_column(String(128), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    pays: Mapped[Optional[str]] = mapped_column(String(64))
    nationality: Mapped[Optional[str]] = mapped_column(String(64))
    region: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    zone: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    weapon_type: Mapped[Optional[str]] = mapped_column(String(32))
    weapon_brand: Mapped[Optional[str]] = mapped_column(String(64))
    weapon_reference: Mapped[Optional[str]] = mapped_column(String(64))
    weapon_caliber: Mapped[Optional[str]] = mapped_column(String(32))
    weapon_other_details: Mapped[Optional[str]] = mapped_column(String(255))
    is_minor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    guardian_id: Mapped[Optional[int]] = mapped_column(ForeignKey('guardians.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def minor_on(self, today: Optional[date] = None) -> bool:
        """Minor status from the birth date; the stored is_minor column is a snapshot of the last write."""
        if self.date_of_birth is None:
            return bool(self.is_minor)
        return is_minor_on(self.date_of_birth, today)


def is_minor_on(date_of_birth: date, today: Optional[date] = None) -> bool:
    today = today or date.today()
    had_birthday = (today.month, today.day) >= (date_of_birth.month, date_of_birth.day)
    age = today.year - date_of_birth.year - (0 if had_birthday else 1)
    return age < MAJORITY_AGE
