"""
Scheduling and outcome engine.

This module owns the slot-booking and appointment-status state machine and
the multi-record operations built on it: booking, rescheduling, accepting,
declining, cancelling, completing and revising outcomes.

Every operation checks all of its preconditions before the first write, so
a raised SchedulingError never leaves the stores half-updated.
"""

import logging
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional, Sequence

from .exceptions import (
    DuplicateMedicationError,
    InvalidStatusError,
    OwnershipError,
    RecordNotFoundError,
    SchedulingError,
    SlotUnavailableError,
    ValidationError,
)
from .models import (
    ACTIVE_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentRecord,
    AppointmentStatus,
    CompletionResult,
    History,
    Outcome,
    Prescription,
    PrescriptionLine,
    PrescriptionStatus,
    RejectedLine,
    Slot,
    SlotStatus,
)
from .stores import Stores
from .timeutils import coerce_date, coerce_time, validate_time_range

logger = logging.getLogger(__name__)


# Scheduling Engine Class
class SchedulingEngine:
    """
    Pure scheduling logic over a set of in-memory stores.

    Appointment lifecycle:
        REQUESTED --accept--> CONFIRMED --complete--> COMPLETED
        REQUESTED --decline--> CANCELLED
        REQUESTED/CONFIRMED --cancel--> CANCELLED
        REQUESTED/CONFIRMED --reschedule--> REQUESTED

    COMPLETED and CANCELLED are terminal.

    Usage:
        engine = SchedulingEngine(stores)
        appointment = engine.book_appointment("P1001", "D001", "S01")
        engine.accept_appointment(appointment.appointment_id, doctor_id="D001")
    """

    def __init__(self, stores: Stores):
        self.stores = stores

    # -- Slot availability --------------------------------------------------

    def set_availability(self, doctor_id: str, on_date, start, end) -> Slot:
        """
        Publish a new AVAILABLE slot for a doctor.

        Args:
            doctor_id: Owning doctor
            on_date: date or yyyy-MM-dd string
            start: time or HH:mm string
            end: time or HH:mm string

        Raises:
            ValidationError: If start >= end or the slot overlaps another
                live slot of the same doctor
        """
        if not doctor_id:
            raise ValidationError("Doctor ID is required", field_name="doctor_id")

        slot_date = coerce_date(on_date)
        if slot_date is None:
            raise ValidationError("Date is required", field_name="date")
        start_time = coerce_time(start)
        end_time = coerce_time(end)
        validate_time_range(start_time, end_time)

        slot = Slot(
            slot_id=self.stores.slots.next_id(),
            doctor_id=doctor_id,
            date=slot_date,
            start_time=start_time,
            end_time=end_time,
        )

        for other in self.stores.slots.filter(doctor_id=doctor_id):
            if other.status is not SlotStatus.REMOVED and slot.overlaps(other):
                raise ValidationError(
                    f"Slot overlaps existing slot {other.slot_id}",
                    field_name="start_time",
                    value=start_time,
                )

        self.stores.slots.add(slot)
        logger.info("Slot %s published for doctor %s", slot.slot_id, doctor_id)
        return slot

    def withdraw_slot(self, doctor_id: str, slot_id: str) -> Optional[Slot]:
        """
        Withdraw an AVAILABLE slot.

        A slot that some appointment has ever referenced is kept as REMOVED
        so its history stays readable; otherwise it is deleted outright.

        Returns:
            The REMOVED slot, or None when the slot was deleted
        """
        slot = self._owned_slot(doctor_id, slot_id)
        if slot.status is not SlotStatus.AVAILABLE:
            raise InvalidStatusError("Slot", slot_id, slot.status, "withdraw slot")

        if self.stores.appointments.all_for_slot(slot_id):
            removed = self.stores.slots.update(replace(slot, status=SlotStatus.REMOVED))
            logger.info("Slot %s marked REMOVED", slot_id)
            return removed

        self.stores.slots.remove(slot_id)
        logger.info("Slot %s deleted", slot_id)
        return None

    # -- Booking ------------------------------------------------------------

    def book_appointment(self, patient_id: str, doctor_id: str, slot_id: str) -> Appointment:
        """
        Request an appointment on an AVAILABLE slot.

        Creates a REQUESTED appointment and marks the slot BOOKED.

        Raises:
            RecordNotFoundError: If the slot does not exist
            OwnershipError: If the slot belongs to another doctor
            SlotUnavailableError: If the slot is not AVAILABLE
        """
        if not patient_id or not patient_id.strip():
            raise ValidationError("Patient ID is required", field_name="patient_id")
        if not doctor_id or not doctor_id.strip():
            raise ValidationError("Doctor ID is required", field_name="doctor_id")

        slot = self._bookable_slot(doctor_id, slot_id)

        appointment = Appointment(
            appointment_id=self.stores.appointments.next_id(),
            patient_id=patient_id,
            doctor_id=slot.doctor_id,
            slot_id=slot_id,
            status=AppointmentStatus.REQUESTED,
        )
        self.stores.appointments.add(appointment)
        self.stores.slots.update(replace(slot, status=SlotStatus.BOOKED))

        logger.info(
            "Appointment %s requested by %s on slot %s",
            appointment.appointment_id,
            patient_id,
            slot_id,
        )
        return appointment

    def reschedule_appointment(
        self,
        appointment_id: str,
        new_slot_id: str,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
    ) -> Appointment:
        """
        Move an active appointment to another slot.

        The old slot is released, the new one booked and the appointment
        goes back to REQUESTED for the doctor to review again.

        Args:
            appointment_id: Appointment to move
            new_slot_id: Target slot, must be AVAILABLE
            patient_id: If given, the appointment must belong to this patient
            doctor_id: Doctor owning the new slot (defaults to the current one)
        """
        appointment = self._patient_appointment(appointment_id, patient_id)
        if appointment.status not in ACTIVE_APPOINTMENT_STATUSES:
            raise InvalidStatusError(
                "Appointment", appointment_id, appointment.status, "reschedule appointment"
            )
        if new_slot_id == appointment.slot_id:
            raise ValidationError(
                "New slot must differ from the current slot",
                field_name="slot_id",
                value=new_slot_id,
            )

        new_slot = self._bookable_slot(doctor_id or appointment.doctor_id, new_slot_id)
        old_slot = self.stores.slots.get(appointment.slot_id)

        if old_slot is not None and old_slot.status is SlotStatus.BOOKED:
            self.stores.slots.update(replace(old_slot, status=SlotStatus.AVAILABLE))
        self.stores.slots.update(replace(new_slot, status=SlotStatus.BOOKED))
        updated = self.stores.appointments.update(
            replace(
                appointment,
                doctor_id=new_slot.doctor_id,
                slot_id=new_slot_id,
                status=AppointmentStatus.REQUESTED,
            )
        )

        logger.info(
            "Appointment %s moved from slot %s to %s",
            appointment_id,
            appointment.slot_id,
            new_slot_id,
        )
        return updated

    # -- Doctor decisions ---------------------------------------------------

    def respond_to_request(
        self, appointment_id: str, accept: bool, doctor_id: Optional[str] = None
    ) -> Appointment:
        """
        Accept or decline a REQUESTED appointment.

        Accepting confirms it; declining cancels it and frees the slot.
        """
        appointment = self._doctor_appointment(appointment_id, doctor_id)
        action = "accept appointment" if accept else "decline appointment"
        if appointment.status is not AppointmentStatus.REQUESTED:
            raise InvalidStatusError("Appointment", appointment_id, appointment.status, action)

        if accept:
            updated = self.stores.appointments.update(
                replace(appointment, status=AppointmentStatus.CONFIRMED)
            )
            logger.info("Appointment %s confirmed", appointment_id)
            return updated

        updated = self._cancel(appointment)
        logger.info("Appointment %s declined", appointment_id)
        return updated

    def accept_appointment(self, appointment_id: str, doctor_id: Optional[str] = None) -> Appointment:
        return self.respond_to_request(appointment_id, True, doctor_id)

    def decline_appointment(self, appointment_id: str, doctor_id: Optional[str] = None) -> Appointment:
        return self.respond_to_request(appointment_id, False, doctor_id)

    # -- Cancellation -------------------------------------------------------

    def cancel_appointment(self, appointment_id: str, patient_id: Optional[str] = None) -> Appointment:
        """
        Cancel a REQUESTED or CONFIRMED appointment and free its slot.

        Raises:
            InvalidStatusError: If the appointment is COMPLETED or CANCELLED
        """
        appointment = self._patient_appointment(appointment_id, patient_id)
        if appointment.status not in ACTIVE_APPOINTMENT_STATUSES:
            raise InvalidStatusError(
                "Appointment", appointment_id, appointment.status, "cancel appointment"
            )

        updated = self._cancel(appointment)
        logger.info("Appointment %s cancelled", appointment_id)
        return updated

    def _cancel(self, appointment: Appointment) -> Appointment:
        slot = self.stores.slots.get(appointment.slot_id)
        updated = self.stores.appointments.update(
            replace(appointment, status=AppointmentStatus.CANCELLED)
        )
        if slot is not None and slot.status is SlotStatus.BOOKED:
            self.stores.slots.update(replace(slot, status=SlotStatus.AVAILABLE))
        return updated

    # -- Completion ---------------------------------------------------------

    def validate_prescription_line(
        self,
        appointment_id: str,
        line: PrescriptionLine,
        pending: Iterable[str] = (),
    ) -> None:
        """
        Check one prescription line against an appointment.

        Args:
            appointment_id: Appointment the line would be written for
            line: Requested medication order
            pending: Medication IDs already accepted but not yet stored

        Raises:
            ValidationError: If the quantity is not positive
            RecordNotFoundError: If the medication does not exist
            DuplicateMedicationError: If the medication is already prescribed
        """
        if not line.medication_id or not line.medication_id.strip():
            raise ValidationError("Medication ID is required", field_name="medication_id")
        if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity <= 0:
            raise ValidationError(
                f"Quantity must be greater than zero, got {line.quantity}",
                field_name="quantity",
                value=line.quantity,
            )
        if not self.stores.medications.exists(line.medication_id):
            raise RecordNotFoundError("Medication", line.medication_id)

        already = {p.medication_id for p in self.stores.prescriptions.for_appointment(appointment_id)}
        already.update(pending)
        if line.medication_id in already:
            raise DuplicateMedicationError(appointment_id, line.medication_id)

    def complete_appointment(
        self,
        appointment_id: str,
        service_provided: str,
        consultation_notes: str,
        prescriptions: Sequence[PrescriptionLine] = (),
        doctor_id: Optional[str] = None,
        strict: bool = False,
    ) -> CompletionResult:
        """
        Record the outcome of a CONFIRMED appointment.

        Each prescription line is checked on its own; a bad line is listed
        in the result's ``rejected`` entries and the rest still go through.
        With ``strict`` the first bad line raises and nothing is written.

        Writes, in order: one PENDING Prescription per accepted line, one
        Outcome listing their IDs, the appointment (COMPLETED, outcome
        attached) and the slot (COMPLETED).

        Returns:
            CompletionResult with the outcome, prescriptions and rejections
        """
        appointment = self._doctor_appointment(appointment_id, doctor_id)
        if appointment.status is not AppointmentStatus.CONFIRMED:
            raise InvalidStatusError(
                "Appointment", appointment_id, appointment.status, "complete appointment"
            )
        service_provided = _required_text(service_provided, "service_provided")
        consultation_notes = _required_text(consultation_notes, "consultation_notes")
        slot = self.stores.slots.require(appointment.slot_id)

        accepted, rejected = self._screen_lines(appointment_id, prescriptions, strict)

        created = self._write_prescriptions(appointment_id, accepted)
        outcome = Outcome(
            outcome_id=self.stores.outcomes.next_id(),
            appointment_id=appointment_id,
            service_provided=service_provided,
            consultation_notes=consultation_notes,
            prescription_ids=[p.prescription_id for p in created],
        )
        self.stores.outcomes.add(outcome)
        completed = self.stores.appointments.update(
            replace(
                appointment,
                status=AppointmentStatus.COMPLETED,
                outcome_id=outcome.outcome_id,
            )
        )
        self.stores.slots.update(replace(slot, status=SlotStatus.COMPLETED))

        logger.info(
            "Appointment %s completed with outcome %s (%d prescription(s))",
            appointment_id,
            outcome.outcome_id,
            len(created),
        )
        return CompletionResult(
            appointment=completed,
            outcome=outcome,
            prescriptions=created,
            rejected=rejected,
        )

    def _screen_lines(self, appointment_id: str, lines: Sequence[PrescriptionLine], strict: bool):
        accepted: List[PrescriptionLine] = []
        rejected: List[RejectedLine] = []
        for line in lines:
            try:
                self.validate_prescription_line(
                    appointment_id, line, pending=[a.medication_id for a in accepted]
                )
            except SchedulingError as e:
                if strict:
                    raise
                logger.warning("Prescription line %s rejected: %s", line.medication_id, e)
                rejected.append(RejectedLine(line=line, reason=str(e)))
                continue
            accepted.append(line)
        return accepted, rejected

    def _write_prescriptions(
        self, appointment_id: str, lines: Sequence[PrescriptionLine]
    ) -> List[Prescription]:
        created = []
        for line in lines:
            prescription = Prescription(
                prescription_id=self.stores.prescriptions.next_id(),
                appointment_id=appointment_id,
                medication_id=line.medication_id,
                quantity=line.quantity,
                status=PrescriptionStatus.PENDING,
                notes=(line.notes or "").strip(),
            )
            self.stores.prescriptions.add(prescription)
            created.append(prescription)
        return created

    # -- Outcome revision ---------------------------------------------------

    def update_outcome(
        self,
        outcome_id: str,
        service_provided: Optional[str] = None,
        consultation_notes: Optional[str] = None,
        doctor_id: Optional[str] = None,
    ) -> Outcome:
        """
        Revise the service and notes of an outcome.

        Blank or None values keep the current text. Prescriptions and
        appointment/slot state are not touched.
        """
        outcome = self._doctor_outcome(outcome_id, doctor_id)
        changes = {}
        if service_provided and service_provided.strip():
            changes["service_provided"] = service_provided.strip()
        if consultation_notes and consultation_notes.strip():
            changes["consultation_notes"] = consultation_notes.strip()
        if not changes:
            return outcome

        updated = self.stores.outcomes.update(replace(outcome, **changes))
        logger.info("Outcome %s updated (%s)", outcome_id, ", ".join(sorted(changes)))
        return updated

    def add_prescription(
        self, outcome_id: str, line: PrescriptionLine, doctor_id: Optional[str] = None
    ) -> Prescription:
        """Prescribe one more medication on an existing outcome."""
        outcome = self._doctor_outcome(outcome_id, doctor_id)
        self.validate_prescription_line(outcome.appointment_id, line)

        (prescription,) = self._write_prescriptions(outcome.appointment_id, [line])
        self.stores.outcomes.update(
            replace(outcome, prescription_ids=outcome.prescription_ids + [prescription.prescription_id])
        )
        logger.info("Prescription %s added to outcome %s", prescription.prescription_id, outcome_id)
        return prescription

    def remove_prescription(
        self, outcome_id: str, prescription_id: str, doctor_id: Optional[str] = None
    ) -> Outcome:
        """
        Delete a PENDING prescription and drop it from its outcome.

        Raises:
            RecordNotFoundError: If the prescription is not part of this outcome
            InvalidStatusError: If the prescription was already dispensed
        """
        outcome = self._doctor_outcome(outcome_id, doctor_id)
        prescription = self.stores.prescriptions.get(prescription_id)
        if prescription is None or prescription.appointment_id != outcome.appointment_id:
            raise RecordNotFoundError("Prescription", prescription_id)
        if prescription.status is not PrescriptionStatus.PENDING:
            raise InvalidStatusError(
                "Prescription", prescription_id, prescription.status, "remove prescription"
            )

        self.stores.prescriptions.remove(prescription_id)
        updated = self.stores.outcomes.update(
            replace(
                outcome,
                prescription_ids=[p for p in outcome.prescription_ids if p != prescription_id],
            )
        )
        logger.info("Prescription %s removed from outcome %s", prescription_id, outcome_id)
        return updated

    def manage_prescriptions(
        self,
        outcome_id: str,
        add: Sequence[PrescriptionLine] = (),
        remove: Sequence[str] = (),
        doctor_id: Optional[str] = None,
    ) -> CompletionResult:
        """
        Apply a batch of prescription changes to an outcome.

        Removals run first, then additions. Additions that fail validation
        are reported in ``rejected``; a failing removal raises before any
        change is made. An ID listed more than once is removed once.
        """
        outcome = self._doctor_outcome(outcome_id, doctor_id)
        appointment = self.stores.appointments.require(outcome.appointment_id)
        remove = list(dict.fromkeys(remove))

        for prescription_id in remove:
            prescription = self.stores.prescriptions.get(prescription_id)
            if prescription is None or prescription.appointment_id != outcome.appointment_id:
                raise RecordNotFoundError("Prescription", prescription_id)
            if prescription.status is not PrescriptionStatus.PENDING:
                raise InvalidStatusError(
                    "Prescription", prescription_id, prescription.status, "remove prescription"
                )

        for prescription_id in remove:
            self.remove_prescription(outcome_id, prescription_id)

        accepted, rejected = self._screen_lines(outcome.appointment_id, add, strict=False)
        created = []
        for line in accepted:
            created.append(self.add_prescription(outcome_id, line))

        return CompletionResult(
            appointment=appointment,
            outcome=self.stores.outcomes.require(outcome_id),
            prescriptions=self.stores.prescriptions.for_appointment(outcome.appointment_id),
            rejected=rejected,
        )

    # -- Dispensing ---------------------------------------------------------

    def dispense_prescription(self, prescription_id: str) -> Prescription:
        """
        Mark a PENDING prescription DISPENSED and take its quantity out of stock.

        Raises:
            InvalidStatusError: If it was already dispensed
            InsufficientStockError: If stock cannot cover the quantity
        """
        prescription = self.stores.prescriptions.require(prescription_id)
        if prescription.status is not PrescriptionStatus.PENDING:
            raise InvalidStatusError(
                "Prescription", prescription_id, prescription.status, "dispense prescription"
            )

        self.stores.medications.decrement(prescription.medication_id, prescription.quantity)
        updated = self.stores.prescriptions.update(
            replace(prescription, status=PrescriptionStatus.DISPENSED)
        )
        logger.info(
            "Prescription %s dispensed (%s x%d)",
            prescription_id,
            prescription.medication_id,
            prescription.quantity,
        )
        return updated

    # -- Medical history ----------------------------------------------------

    def patient_medical_history(self, patient_id: str, doctor_id: Optional[str] = None) -> List[History]:
        """
        A patient's history records, oldest first.

        With ``doctor_id`` the patient must be under that doctor's care.
        """
        if doctor_id:
            patient_id = self._patient_under_care(doctor_id, patient_id)
        return self.stores.history.for_patient(patient_id)

    def add_medical_history(
        self,
        patient_id: str,
        diagnosis: str,
        treatment: str,
        doctor_id: Optional[str] = None,
        diagnosis_date=None,
    ) -> History:
        """
        Record a new diagnosis and treatment for a patient.

        Args:
            patient_id: Patient the record belongs to
            diagnosis: Required diagnosis text
            treatment: Required treatment text
            doctor_id: If given, the patient must be under this doctor's care
            diagnosis_date: date or yyyy-MM-dd string (defaults to today)

        Raises:
            ValidationError: If a text field is blank or the date is malformed
            OwnershipError: If the patient is not under the doctor's care
        """
        if not patient_id or not patient_id.strip():
            raise ValidationError("Patient ID is required", field_name="patient_id")
        if doctor_id:
            patient_id = self._patient_under_care(doctor_id, patient_id)
        diagnosis = _required_text(diagnosis, "diagnosis")
        treatment = _required_text(treatment, "treatment")
        record_date = coerce_date(diagnosis_date) or date.today()

        history = History(
            history_id=self.stores.history.next_id(),
            patient_id=patient_id,
            diagnosis_date=record_date,
            diagnosis=diagnosis,
            treatment=treatment,
        )
        self.stores.history.add(history)
        logger.info("History %s added for patient %s", history.history_id, patient_id)
        return history

    def update_medical_history(
        self,
        history_id: str,
        diagnosis: Optional[str] = None,
        treatment: Optional[str] = None,
        doctor_id: Optional[str] = None,
    ) -> History:
        """Revise a history record. Blank or None values keep the current text."""
        history = self.stores.history.require(history_id)
        if doctor_id:
            self._patient_under_care(doctor_id, history.patient_id)
        changes = {}
        if diagnosis and diagnosis.strip():
            changes["diagnosis"] = diagnosis.strip()
        if treatment and treatment.strip():
            changes["treatment"] = treatment.strip()
        if not changes:
            return history

        updated = self.stores.history.update(replace(history, **changes))
        logger.info("History %s updated (%s)", history_id, ", ".join(sorted(changes)))
        return updated

    # -- Read accessors -----------------------------------------------------

    def get_slot(self, slot_id: str) -> Optional[Slot]:
        return self.stores.slots.get(slot_id)

    def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self.stores.appointments.get(appointment_id)

    def get_outcome(self, outcome_id: str) -> Optional[Outcome]:
        return self.stores.outcomes.get(outcome_id)

    def get_prescriptions_by_appointment(self, appointment_id: str) -> List[Prescription]:
        return self.stores.prescriptions.for_appointment(appointment_id)

    def available_slots(self, doctor_id: str, on_date=None) -> List[Slot]:
        return self.stores.slots.available_for(doctor_id, coerce_date(on_date))

    def appointments_for_patient(self, patient_id: str, status=None) -> List[Appointment]:
        return self.stores.appointments.filter(patient_id=patient_id, status=status)

    def appointments_for_doctor(self, doctor_id: str, status=None) -> List[Appointment]:
        return self.stores.appointments.filter(doctor_id=doctor_id, status=status)

    def scheduled_appointments(self, patient_id: str) -> List[Appointment]:
        """REQUESTED and CONFIRMED appointments of a patient."""
        return [a for a in self.appointments_for_patient(patient_id) if a.is_active]

    def past_appointments(self, patient_id: str) -> List[Appointment]:
        """COMPLETED and CANCELLED appointments of a patient."""
        return [a for a in self.appointments_for_patient(patient_id) if not a.is_active]

    def pending_prescriptions(self) -> List[Prescription]:
        return self.stores.prescriptions.filter(status=PrescriptionStatus.PENDING)

    def doctor_schedule(self, doctor_id: str):
        """Each non-REMOVED slot of a doctor paired with the appointment holding it."""
        schedule = []
        for slot in self.stores.slots.by_doctor(doctor_id):
            if slot.status is SlotStatus.REMOVED:
                continue
            appointment = None
            if slot.status is not SlotStatus.AVAILABLE:
                appointment = self.stores.appointments.by_slot(slot.slot_id)
            schedule.append((slot, appointment))
        return schedule

    def appointment_record(self, appointment_id: str) -> Optional[AppointmentRecord]:
        """An appointment joined with its slot, outcome and prescriptions."""
        details = self.stores.appointments.details(appointment_id, self.stores.slots)
        if details is None:
            return None
        appointment, slot = details
        return AppointmentRecord(
            appointment=appointment,
            slot=slot,
            outcome=self.stores.outcomes.get(appointment.outcome_id),
            prescriptions=self.stores.prescriptions.for_appointment(appointment_id),
        )

    def patients_under_care(self, doctor_id: str) -> List[str]:
        """Distinct patient IDs with a CONFIRMED or COMPLETED appointment with this doctor."""
        seen = []
        for appointment in self.appointments_for_doctor(doctor_id):
            if appointment.status in (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED):
                if appointment.patient_id not in seen:
                    seen.append(appointment.patient_id)
        return seen

    # -- Lookups with ownership checks --------------------------------------

    def _patient_under_care(self, doctor_id: str, patient_id: str) -> str:
        for under_care in self.patients_under_care(doctor_id):
            if _same_id(under_care, patient_id):
                return under_care
        raise OwnershipError("Patient", patient_id, "doctor", doctor_id)

    def _owned_slot(self, doctor_id: str, slot_id: str) -> Slot:
        slot = self.stores.slots.require(slot_id)
        if doctor_id and not _same_id(slot.doctor_id, doctor_id):
            raise OwnershipError("Slot", slot_id, "doctor", doctor_id)
        return slot

    def _bookable_slot(self, doctor_id: str, slot_id: str) -> Slot:
        slot = self._owned_slot(doctor_id, slot_id)
        if slot.status is not SlotStatus.AVAILABLE:
            raise SlotUnavailableError(slot_id, slot.status)
        return slot

    def _patient_appointment(self, appointment_id: str, patient_id: Optional[str]) -> Appointment:
        appointment = self.stores.appointments.require(appointment_id)
        if patient_id and not _same_id(appointment.patient_id, patient_id):
            raise OwnershipError("Appointment", appointment_id, "patient", patient_id)
        return appointment

    def _doctor_appointment(self, appointment_id: str, doctor_id: Optional[str]) -> Appointment:
        appointment = self.stores.appointments.require(appointment_id)
        if doctor_id and not _same_id(appointment.doctor_id, doctor_id):
            raise OwnershipError("Appointment", appointment_id, "doctor", doctor_id)
        return appointment

    def _doctor_outcome(self, outcome_id: str, doctor_id: Optional[str]) -> Outcome:
        outcome = self.stores.outcomes.require(outcome_id)
        if doctor_id:
            self._doctor_appointment(outcome.appointment_id, doctor_id)
        return outcome


def _required_text(value: Optional[str], field_name: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{field_name.replace('_', ' ').capitalize()} is required", field_name=field_name)
    return value.strip()


def _same_id(left: str, right: str) -> bool:
    """User IDs compare like the store filters do: trimmed, case-insensitive."""
    return left.strip().lower() == right.strip().lower()
