"""
Domain models for the scheduling engine.

These dataclasses are plain records. All lifecycle rules live in the
engine; the models only know how to describe themselves.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import List, Optional, Union


# Status Enums
class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    COMPLETED = "COMPLETED"
    REMOVED = "REMOVED"


class AppointmentStatus(str, Enum):
    REQUESTED = "REQUESTED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Appointments still holding their slot
ACTIVE_APPOINTMENT_STATUSES = (AppointmentStatus.REQUESTED, AppointmentStatus.CONFIRMED)


class PrescriptionStatus(str, Enum):
    PENDING = "PENDING"
    DISPENSED = "DISPENSED"


class Role(str, Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    PHARMACIST = "PHARMACIST"
    ADMINISTRATOR = "ADMINISTRATOR"


# Slot
@dataclass
class Slot:
    """A doctor-defined window of time available for one appointment."""

    slot_id: str
    doctor_id: str
    date: date
    start_time: time
    end_time: time
    status: SlotStatus = SlotStatus.AVAILABLE

    @property
    def record_id(self) -> str:
        return self.slot_id

    def overlaps(self, other: "Slot") -> bool:
        """True if both slots share a doctor and date and their times intersect."""
        return (
            self.doctor_id == other.doctor_id
            and self.date == other.date
            and self.start_time < other.end_time
            and other.start_time < self.end_time
        )


# Appointment
@dataclass
class Appointment:
    """
    A booking linking one patient, one doctor and one slot.

    outcome_id is only populated once the appointment is COMPLETED.
    """

    appointment_id: str
    patient_id: str
    doctor_id: str
    slot_id: str
    status: AppointmentStatus = AppointmentStatus.REQUESTED
    outcome_id: Optional[str] = None

    @property
    def record_id(self) -> str:
        return self.appointment_id

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_APPOINTMENT_STATUSES


# Outcome
@dataclass
class Outcome:
    """
    The clinical record produced when an appointment is completed.

    prescription_ids keeps the order prescriptions were written in; an
    empty list means nothing was prescribed.
    """

    outcome_id: str
    appointment_id: str
    service_provided: str
    consultation_notes: str
    prescription_ids: List[str] = field(default_factory=list)

    @property
    def record_id(self) -> str:
        return self.outcome_id


# Prescription
@dataclass
class Prescription:
    """One medication order tied to an appointment."""

    prescription_id: str
    appointment_id: str
    medication_id: str
    quantity: int
    status: PrescriptionStatus = PrescriptionStatus.PENDING
    notes: str = ""

    @property
    def record_id(self) -> str:
        return self.prescription_id


# Prescription Line (input to completion)
@dataclass(frozen=True)
class PrescriptionLine:
    """A requested medication order before it becomes a Prescription."""

    medication_id: str
    quantity: int
    notes: str = ""


# Medication
@dataclass
class Medication:
    medication_id: str
    name: str
    stock_level: int = 0
    low_stock_alert_level: int = 0

    @property
    def record_id(self) -> str:
        return self.medication_id


# Medical History
@dataclass
class History:
    """One diagnosis and its treatment in a patient's medical history."""

    history_id: str
    patient_id: str
    diagnosis_date: date
    diagnosis: str
    treatment: str

    @property
    def record_id(self) -> str:
        return self.history_id


# User profiles, one per role
@dataclass
class PatientProfile:
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    contact_number: Optional[str] = None
    email_address: Optional[str] = None


@dataclass
class DoctorProfile:
    specialization: Optional[str] = None
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    email_address: Optional[str] = None


@dataclass
class StaffProfile:
    gender: Optional[str] = None
    contact_number: Optional[str] = None
    email_address: Optional[str] = None


Profile = Union[PatientProfile, DoctorProfile, StaffProfile]


# User
@dataclass
class User:
    """
    A system user. The profile type always matches the role; use
    make_user() rather than building one by hand.
    """

    user_id: str
    name: str
    role: Role
    profile: Profile

    @property
    def record_id(self) -> str:
        return self.user_id


def make_user(user_id: str, name: str, role: Role, **details) -> User:
    """Build a User with the profile payload that belongs to its role."""
    keep = {k: (v or None) for k, v in details.items()}

    if role is Role.PATIENT:
        profile = PatientProfile(
            date_of_birth=keep.get("date_of_birth"),
            gender=keep.get("gender"),
            blood_type=keep.get("blood_type"),
            contact_number=keep.get("contact_number"),
            email_address=keep.get("email_address"),
        )
    elif role is Role.DOCTOR:
        profile = DoctorProfile(
            specialization=keep.get("specialization"),
            gender=keep.get("gender"),
            contact_number=keep.get("contact_number"),
            email_address=keep.get("email_address"),
        )
    elif role in (Role.PHARMACIST, Role.ADMINISTRATOR):
        profile = StaffProfile(
            gender=keep.get("gender"),
            contact_number=keep.get("contact_number"),
            email_address=keep.get("email_address"),
        )
    else:
        raise ValueError(f"Unknown role: {role}")

    return User(user_id=user_id, name=name, role=role, profile=profile)


# Result Containers
@dataclass
class RejectedLine:
    line: PrescriptionLine
    reason: str


@dataclass
class CompletionResult:
    """
    Result of completing an appointment or managing its prescriptions.

    Lines that failed validation are listed in ``rejected`` rather than
    aborting the whole operation.
    """

    appointment: Appointment
    outcome: Outcome
    prescriptions: List[Prescription] = field(default_factory=list)
    rejected: List[RejectedLine] = field(default_factory=list)


@dataclass
class AppointmentRecord:
    """An appointment joined with its slot, outcome and prescriptions."""

    appointment: Appointment
    slot: Slot
    outcome: Optional[Outcome] = None
    prescriptions: List[Prescription] = field(default_factory=list)
