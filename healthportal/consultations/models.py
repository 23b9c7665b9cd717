"""
Healthcare Portal - Consultation Database Models

A consultation request moves pending -> accepted | rejected. Accepting
creates exactly one Appointment, enforced by a UNIQUE constraint on
Appointment.consultation_request_id as well as by the service.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Boolean, Date, DateTime, Enum as SQLEnum, String, Text, Time

from healthportal.auth.models import utcnow


class ConsultationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ConsultationRequest(SQLModel, table=True):
    """
    A patient's request to see a consultant at a hospital.

    Attributes:
        id: Unique identifier
        organization_id: Owning hospital account
        patient_id: Patient record (managed by the patients module)
        consultant_id: Assigned consultant, required before acceptance
        request_date / request_time: Requested slot
        notes: Free text from the requester
        is_urgent: Triage flag
        status: pending, accepted or rejected
    """
    __tablename__ = "consultation_requests"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_id: UUID = Field(foreign_key="accounts.id", nullable=False, index=True)
    patient_id: UUID = Field(nullable=False, index=True)
    consultant_id: Optional[UUID] = Field(default=None, index=True)
    request_date: date = Field(sa_column=Column(Date, nullable=False))
    request_time: time = Field(sa_column=Column(Time, nullable=False))
    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    is_urgent: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False),
    )
    status: ConsultationStatus = Field(
        default=ConsultationStatus.PENDING,
        sa_column=Column(SQLEnum(ConsultationStatus), nullable=False, index=True),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, default=utcnow),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow),
    )


class Appointment(SQLModel, table=True):
    """
    A scheduled visit, copied from an accepted consultation request.
    """
    __tablename__ = "appointments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    organization_id: UUID = Field(foreign_key="accounts.id", nullable=False, index=True)
    consultation_request_id: Optional[UUID] = Field(
        default=None,
        foreign_key="consultation_requests.id",
        unique=True,
    )
    patient_id: UUID = Field(nullable=False, index=True)
    consultant_id: UUID = Field(nullable=False, index=True)
    appointment_date: date = Field(sa_column=Column(Date, nullable=False))
    appointment_time: time = Field(sa_column=Column(Time, nullable=False))
    status: str = Field(
        default="scheduled",
        sa_column=Column(String(32), nullable=False, default="scheduled"),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, default=utcnow),
    )
