"""
Relational tables (SQLAlchemy ORM). PostgreSQL in production, SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from domain.models import utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    email: Mapped[Optional[str]] = mapped_column(String, unique=True, nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default="employer")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    reference_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    application_type: Mapped[str] = mapped_column(String(32), nullable=False)
    number_of_workers: Mapped[int] = mapped_column(Integer, nullable=False)
    number_of_certified_workers: Mapped[int] = mapped_column(Integer, nullable=False)
    owner_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    owner_business_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    services_description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft", index=True)
    review_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    user: Mapped[User] = relationship(foreign_keys=[user_id])
    reviewer: Mapped[Optional[User]] = relationship(foreign_keys=[reviewed_by])
    documents: Mapped[List["Document"]] = relationship(
        back_populates="application", order_by="Document.created_at"
    )
    triaging_checklist: Mapped[Optional["TriageChecklist"]] = relationship(
        back_populates="application", uselist=False
    )


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    application_id: Mapped[str] = mapped_column(
        ForeignKey("applications.id"), nullable=False, index=True
    )
    stored_name: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    original_name: Mapped[str] = mapped_column(Text, nullable=False)
    mime_type: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    document_type: Mapped[str] = mapped_column(String(64), nullable=False, default="other")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    application: Mapped[Application] = relationship(back_populates="documents")


class TriageChecklist(Base):
    __tablename__ = "triaging_checklists"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    application_id: Mapped[str] = mapped_column(
        ForeignKey("applications.id"), unique=True, nullable=False
    )
    # Section 1 - decision
    date_of_decision: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    decision: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    prepared_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    job_title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Section 2 - employer information
    employer_legal_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    employer_trade_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    employer_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active_status: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    account_coverage: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    firm_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    employer_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    classification_units: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    employer_cu_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    overdue_balance: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    current_account_balance: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Section 3 - review checklist
    bc_company_summary: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_applicant_in_scope: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    classification_unit_related: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_amounts_owing: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_number_of_workers: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_certified_workers: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    lat_screen_capture: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_lat_escalation: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_injunction_violations: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_referrals_from_pfs: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_renewals_consistency: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    review_associated_firms: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    has_noph_information: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    transport_acms: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    application: Mapped[Application] = relationship(back_populates="triaging_checklist")


class AuditEvent(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    actor: Mapped[str] = mapped_column(String, nullable=False, default="system")
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
