"""
Healthcare Portal - Hospital Consultation Routes

- GET    /hospital/consultation-requests        - List own requests (?status=)
- POST   /hospital/consultation-requests        - Create a request
- PATCH  /hospital/consultation-requests/{id}   - Update / change status
- DELETE /hospital/consultation-requests/{id}   - Delete a request
- GET    /hospital/appointments                 - List own appointments

Lab accounts and other organizations' ids get 404.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from healthportal.auth.dependencies import get_db
from healthportal.auth.schemas import ErrorResponse, MessageResponse
from healthportal.consultations.models import Appointment, ConsultationRequest, ConsultationStatus
from healthportal.consultations.schemas import (
    AppointmentList,
    AppointmentResponse,
    ConsultationRequestCreate,
    ConsultationRequestList,
    ConsultationRequestResponse,
    ConsultationRequestUpdate,
)
from healthportal.consultations.service import ConsultationService
from healthportal.gateway.guard import OrganizationScope, Permission, require_permission


router = APIRouter(prefix="/hospital", tags=["hospital"])

can_read_requests = require_permission(Permission.READ_CONSULTATION_REQUESTS)
can_write_requests = require_permission(Permission.WRITE_CONSULTATION_REQUESTS)
can_read_appointments = require_permission(Permission.READ_APPOINTMENTS)


def _request_response(
    record: ConsultationRequest, appointment: Optional[Appointment] = None
) -> ConsultationRequestResponse:
    response = ConsultationRequestResponse.model_validate(record)
    if appointment is not None:
        response.appointment = AppointmentResponse.model_validate(appointment)
    return response


@router.get(
    "/consultation-requests",
    response_model=ConsultationRequestList,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_consultation_requests(
    status_filter: Optional[ConsultationStatus] = Query(None, alias="status"),
    scope: OrganizationScope = Depends(can_read_requests),
    db=Depends(get_db),
):
    records = ConsultationService(db, scope).list_requests(status_filter)
    return ConsultationRequestList(
        requests=[_request_response(r) for r in records],
        total=len(records),
    )


@router.post(
    "/consultation-requests",
    response_model=ConsultationRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_consultation_request(
    body: ConsultationRequestCreate,
    scope: OrganizationScope = Depends(can_write_requests),
    db=Depends(get_db),
):
    record = ConsultationService(db, scope).create_request(body)
    return _request_response(record)


@router.patch(
    "/consultation-requests/{request_id}",
    response_model=ConsultationRequestResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_consultation_request(
    request_id: UUID,
    body: ConsultationRequestUpdate,
    scope: OrganizationScope = Depends(can_write_requests),
    db=Depends(get_db),
):
    """
    Update a request. Setting status to "accepted" schedules an
    appointment; doing it twice returns the same appointment.
    """
    record, appointment = ConsultationService(db, scope).update_request(request_id, body)
    return _request_response(record, appointment)


@router.delete(
    "/consultation-requests/{request_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
)
async def delete_consultation_request(
    request_id: UUID,
    scope: OrganizationScope = Depends(can_write_requests),
    db=Depends(get_db),
):
    ConsultationService(db, scope).delete_request(request_id)
    return MessageResponse(message="Consultation request deleted")


@router.get(
    "/appointments",
    response_model=AppointmentList,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_appointments(
    status_filter: Optional[str] = Query(None, alias="status"),
    scope: OrganizationScope = Depends(can_read_appointments),
    db=Depends(get_db),
):
    appointments = ConsultationService(db, scope).list_appointments(status_filter)
    return AppointmentList(
        appointments=[AppointmentResponse.model_validate(a) for a in appointments],
        total=len(appointments),
    )
