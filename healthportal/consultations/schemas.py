"""
Healthcare Portal - Consultation Request/Response Schemas

Request bodies never carry an organization id; ownership comes from the
signed-in account.
"""

from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, validator

from healthportal.consultations.models import ConsultationStatus


class ConsultationRequestCreate(BaseModel):
    """Request body for POST /hospital/consultation-requests."""
    patient_id: UUID = Field(..., alias="patientId")
    consultant_id: Optional[UUID] = Field(None, alias="consultantId")
    request_date: date = Field(..., alias="requestDate")
    request_time: time = Field(..., alias="requestTime")
    notes: Optional[str] = Field(None, max_length=2000)
    is_urgent: bool = Field(False, alias="isUrgent")

    class Config:
        populate_by_name = True

    @validator("notes")
    def blank_notes_to_none(cls, v):
        if v is not None and not v.strip():
            return None
        return v


class ConsultationRequestUpdate(BaseModel):
    """
    Request body for PATCH /hospital/consultation-requests/{id}.

    All fields optional; status changes follow the transition rules.
    """
    status: Optional[ConsultationStatus] = None
    consultant_id: Optional[UUID] = Field(None, alias="consultantId")
    is_urgent: Optional[bool] = Field(None, alias="isUrgent")
    notes: Optional[str] = Field(None, max_length=2000)

    class Config:
        populate_by_name = True


class AppointmentResponse(BaseModel):
    id: UUID
    consultation_request_id: Optional[UUID] = Field(None, alias="consultationRequestId")
    patient_id: UUID = Field(..., alias="patientId")
    consultant_id: UUID = Field(..., alias="consultantId")
    appointment_date: date = Field(..., alias="appointmentDate")
    appointment_time: time = Field(..., alias="appointmentTime")
    status: str
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True


class ConsultationRequestResponse(BaseModel):
    id: UUID
    patient_id: UUID = Field(..., alias="patientId")
    consultant_id: Optional[UUID] = Field(None, alias="consultantId")
    request_date: date = Field(..., alias="requestDate")
    request_time: time = Field(..., alias="requestTime")
    notes: Optional[str] = None
    is_urgent: bool = Field(..., alias="isUrgent")
    status: ConsultationStatus
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    appointment: Optional[AppointmentResponse] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class ConsultationRequestList(BaseModel):
    requests: list[ConsultationRequestResponse]
    total: int


class AppointmentList(BaseModel):
    appointments: list[AppointmentResponse]
    total: int
