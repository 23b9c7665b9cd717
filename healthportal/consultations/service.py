"""
Healthcare Portal - Consultation Service

CRUD on consultation requests plus the status transition that creates an
appointment. Every query goes through OrganizationScope, so a request id
belonging to another hospital behaves exactly like an unknown id.

Transitions:
    pending  -> accepted   creates one Appointment from the request
    pending  -> rejected
    accepted -> accepted   no-op, returns the existing appointment
    rejected -> rejected   no-op
Anything else is rejected with 400.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session as DBSession, select

from healthportal.auth.database import commit
from healthportal.auth.models import utcnow
from healthportal.consultations.models import Appointment, ConsultationRequest, ConsultationStatus
from healthportal.consultations.schemas import ConsultationRequestCreate, ConsultationRequestUpdate
from healthportal.exceptions import ValidationError
from healthportal.gateway.guard import OrganizationScope

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[ConsultationStatus, Set[ConsultationStatus]] = {
    ConsultationStatus.PENDING: {ConsultationStatus.ACCEPTED, ConsultationStatus.REJECTED},
    ConsultationStatus.ACCEPTED: set(),
    ConsultationStatus.REJECTED: set(),
}


class ConsultationService:
    """
    Consultation requests and appointments of one organization.

    Usage:
        service = ConsultationService(db, scope)
        request, appointment = service.update_request(request_id, update)
    """

    def __init__(self, db: DBSession, scope: OrganizationScope):
        self.db = db
        self.scope = scope

    def list_requests(self, status: Optional[ConsultationStatus] = None) -> List[ConsultationRequest]:
        statement = self.scope.scoped(select(ConsultationRequest), ConsultationRequest)
        if status is not None:
            statement = statement.where(ConsultationRequest.status == status)
        statement = statement.order_by(ConsultationRequest.created_at.desc())
        return list(self.db.exec(statement).all())

    def get_request(self, request_id: UUID) -> ConsultationRequest:
        return self.scope.get_owned(self.db, ConsultationRequest, request_id)

    def create_request(self, data: ConsultationRequestCreate) -> ConsultationRequest:
        record = ConsultationRequest(**data.model_dump())
        self.scope.stamp(record)
        self.db.add(record)
        commit(self.db)
        self.db.refresh(record)
        logger.info("Consultation request %s created by %s", record.id, self.scope.organization_id)
        return record

    def find_appointment(self, request_id: UUID) -> Optional[Appointment]:
        statement = self.scope.scoped(
            select(Appointment).where(Appointment.consultation_request_id == request_id),
            Appointment,
        )
        return self.db.exec(statement).first()

    def update_request(
        self, request_id: UUID, update: ConsultationRequestUpdate
    ) -> Tuple[ConsultationRequest, Optional[Appointment]]:
        """
        Apply field changes, then the status transition if one was asked for.

        Raises:
            NotFoundError: unknown id or another organization's request
            ValidationError: transition not allowed, acceptance without an
                assigned consultant, isUrgent set to null, or a consultant
                change on an accepted request
        """
        record = self.get_request(request_id)

        changes = update.model_dump(exclude_unset=True, exclude={"status"})
        if "is_urgent" in changes and changes["is_urgent"] is None:
            raise ValidationError("isUrgent cannot be null", field="isUrgent")

        # The appointment copied the consultant at acceptance
        if (
            record.status == ConsultationStatus.ACCEPTED
            and "consultant_id" in changes
            and changes["consultant_id"] != record.consultant_id
        ):
            raise ValidationError(
                "Consultant cannot be changed after the request is accepted",
                field="consultantId",
            )

        for key, value in changes.items():
            setattr(record, key, value)

        if update.status is None:
            record.updated_at = utcnow()
            self.db.add(record)
            commit(self.db)
            self.db.refresh(record)
            return record, self.find_appointment(record.id)

        return self.transition(record, update.status)

    def transition(
        self, record: ConsultationRequest, new_status: ConsultationStatus
    ) -> Tuple[ConsultationRequest, Optional[Appointment]]:
        """
        Move a request to a new status.

        Accepting writes the status change and the appointment in one
        commit. Re-accepting returns the appointment already on file.
        """
        current = record.status

        if new_status != current and new_status not in ALLOWED_TRANSITIONS[current]:
            self.db.rollback()
            raise ValidationError(
                f"Invalid status transition from {current.value} to {new_status.value}",
                field="status",
            )

        if new_status == ConsultationStatus.ACCEPTED and record.consultant_id is None:
            self.db.rollback()
            raise ValidationError(
                "A consultant must be assigned before accepting", field="consultantId"
            )

        record.status = new_status
        record.updated_at = utcnow()
        self.db.add(record)

        appointment = None
        if new_status == ConsultationStatus.ACCEPTED:
            appointment = self.find_appointment(record.id)
            if appointment is None:
                appointment = self._appointment_from(record)
                self.db.add(appointment)

        try:
            commit(self.db)
        except IntegrityError:
            # A concurrent accept created the appointment first
            self.db.rollback()
            record = self.get_request(record.id)
            existing = self.find_appointment(record.id)
            if existing is None:
                raise
            logger.info("Consultation request %s already accepted concurrently", record.id)
            return record, existing

        self.db.refresh(record)
        if appointment is not None:
            self.db.refresh(appointment)

        if new_status != current:
            logger.info(
                "Consultation request %s: %s -> %s",
                record.id, current.value, new_status.value,
            )
        return record, appointment

    def _appointment_from(self, record: ConsultationRequest) -> Appointment:
        return Appointment(
            organization_id=record.organization_id,
            consultation_request_id=record.id,
            patient_id=record.patient_id,
            consultant_id=record.consultant_id,
            appointment_date=record.request_date,
            appointment_time=record.request_time,
        )

    def delete_request(self, request_id: UUID) -> None:
        """
        Delete a request. An appointment created from it stays scheduled
        and is detached from the deleted request.
        """
        record = self.get_request(request_id)
        appointment = self.find_appointment(record.id)
        if appointment is not None:
            appointment.consultation_request_id = None
            self.db.add(appointment)
            self.db.flush()
        self.db.delete(record)
        commit(self.db)
        logger.info("Consultation request %s deleted", request_id)

    def list_appointments(self, status: Optional[str] = None) -> List[Appointment]:
        statement = self.scope.scoped(select(Appointment), Appointment)
        if status:
            statement = statement.where(Appointment.status == status)
        statement = statement.order_by(
            Appointment.appointment_date, Appointment.appointment_time
        )
        return list(self.db.exec(statement).all())
