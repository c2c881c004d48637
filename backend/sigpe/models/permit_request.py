from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, func
from .authz import Base


class PermitRequest(Base):
    __tablename__ = 'permit_requests'
    # Status constants (statut)
    STATUS_NEW = 'NOUVELLE'
    STATUS_ASSIGNED = 'AFFECTEE'
    STATUS_APPOINTMENT = 'RDV_PLANIFIE'
    STATUS_DOCUMENTS_VERIFIED = 'DOCUMENTS_VERIFIES'
    STATUS_VALIDATED = 'VALIDEE'
    STATUS_REJECTED = 'REJETEE'
    ALL_STATUSES = (STATUS_NEW, STATUS_ASSIGNED, STATUS_APPOINTMENT, STATUS_DOCUMENTS_VERIFIED, STATUS_VALIDATED, STATUS_REJECTED)
    TERMINAL_STATUSES = (STATUS_VALIDATED, STATUS_REJECTED)

    PERMIT_TYPES = (
        'PETITE_CHASSE_RESIDENT', 'PETITE_CHASSE_COUTUMIER', 'GRANDE_CHASSE', 'GIBIER_EAU',
        'SCIENTIFIQUE', 'CAPTURE_COMMERCIALE', 'OISELLERIE',
    )
    REQUEST_TYPES = ('NOUVELLE', 'RENOUVELLEMENT', 'DUPLICATA', 'MIGRATION_COUTUMIER')

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    hunter_id: Mapped[int] = mapped_column(ForeignKey('hunters.id'), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    permit_type: Mapped[str] = mapped_column(String(32), nullable=False)
    request_type: Mapped[str] = mapped_column(String(32), nullable=False, default='NOUVELLE')
    statut: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_NEW, index=True)
    region: Mapped[Optional[str]] = mapped_column(String(64))
    comments: Mapped[Optional[str]] = mapped_column(Text)
    agent_id: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'), nullable=True)
    previous_permit_id: Mapped[Optional[int]] = mapped_column(ForeignKey('permits.id'), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    validated_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    validated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

# Status flow: NOUVELLE -> AFFECTEE -> RDV_PLANIFIE -> DOCUMENTS_VERIFIES -> VALIDEE
# REJETEE reachable from every non-terminal status.
