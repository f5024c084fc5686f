"""
In-memory record stores.

Each store is a Repository keyed by record ID. Stores are created once at
start-up, bundled in a Stores container and handed to whoever needs them;
there is no module-level state.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Generic, Iterator, List, Optional, TypeVar

from .exceptions import DuplicateRecordError, InsufficientStockError, RecordNotFoundError, ValidationError
from .models import (
    Appointment,
    AppointmentStatus,
    History,
    Medication,
    Outcome,
    Prescription,
    Role,
    Slot,
    SlotStatus,
    User,
)
from .timeutils import validate_time_range

logger = logging.getLogger(__name__)

T = TypeVar("T")

ID_SUFFIX = re.compile(r"(\d+)$")


def _normalize(value) -> str:
    """Lower-cased string form used for case-insensitive filtering."""
    value = getattr(value, "value", value)
    return "" if value is None else str(value).lower()


# Generic Repository
class Repository(Generic[T]):
    """
    Dictionary-backed store of records that expose a ``record_id``.

    Subclasses set ``entity`` (used in error messages) and ``id_prefix``
    (used by next_id) and add their own queries.
    """

    entity = "Record"
    id_prefix = "R"

    def __init__(self, records=None):
        self._records: Dict[str, T] = {}
        self._highest = 0
        for record in records or ():
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records.values()))

    def __contains__(self, record_id) -> bool:
        return record_id in self._records

    def add(self, record: T) -> T:
        """Add a new record. Raises DuplicateRecordError if the ID is taken."""
        record_id = record.record_id
        if record_id in self._records:
            raise DuplicateRecordError(self.entity, record_id)
        self._check(record)
        self._records[record_id] = record
        self._highest = max(self._highest, self._suffix(record_id))
        return record

    def get(self, record_id: str) -> Optional[T]:
        """Return the record with this ID, or None."""
        if record_id is None:
            return None
        return self._records.get(record_id)

    def require(self, record_id: str) -> T:
        """Return the record with this ID or raise RecordNotFoundError."""
        record = self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.entity, record_id)
        return record

    def list(self) -> List[T]:
        return list(self._records.values())

    def filter(self, predicate: Optional[Callable[[T], bool]] = None, **criteria) -> List[T]:
        """
        Return records matching every criterion.

        Keyword criteria compare the named attribute to the given value,
        exact but case-insensitive, AND-combined. None values are ignored.
        """
        active = {k: _normalize(v) for k, v in criteria.items() if v is not None}

        def matches(record) -> bool:
            for attr, expected in active.items():
                if _normalize(getattr(record, attr)) != expected:
                    return False
            return predicate(record) if predicate else True

        return [r for r in self._records.values() if matches(r)]

    def update(self, record: T) -> T:
        """Replace an existing record. Raises RecordNotFoundError if missing."""
        record_id = record.record_id
        if record_id not in self._records:
            raise RecordNotFoundError(self.entity, record_id)
        self._check(record)
        self._records[record_id] = record
        return record

    def remove(self, record_id: str) -> T:
        """Hard-delete a record. Raises RecordNotFoundError if missing."""
        if record_id not in self._records:
            raise RecordNotFoundError(self.entity, record_id)
        return self._records.pop(record_id)

    def clear(self) -> None:
        self._records.clear()
        self._highest = 0

    def next_id(self, width: int = 2) -> str:
        """
        Generate the next ID: prefix plus one more than the highest
        numeric suffix ever added to this store, zero-padded to ``width``.

        Deleted records still count, so an ID is never handed out twice
        in one session.
        """
        return f"{self.id_prefix}{self._highest + 1:0{width}d}"

    def _suffix(self, record_id: str) -> int:
        if not record_id.startswith(self.id_prefix):
            return 0
        match = ID_SUFFIX.search(record_id[len(self.id_prefix):])
        return int(match.group(1)) if match else 0

    def _check(self, record: T) -> None:
        """Hook for per-entity invariants checked on add and update."""


# Slot Store
class SlotStore(Repository[Slot]):
    entity = "Slot"
    id_prefix = "S"

    def _check(self, slot: Slot) -> None:
        validate_time_range(slot.start_time, slot.end_time)

    def by_doctor(self, doctor_id: str, status: Optional[SlotStatus] = None) -> List[Slot]:
        return sorted(self.filter(doctor_id=doctor_id, status=status), key=_slot_order)

    def available_for(self, doctor_id: str, on_date: Optional[date] = None) -> List[Slot]:
        """AVAILABLE slots for a doctor, optionally restricted to one date."""
        slots = self.filter(
            lambda s: on_date is None or s.date == on_date,
            doctor_id=doctor_id,
            status=SlotStatus.AVAILABLE,
        )
        return sorted(slots, key=_slot_order)


def _slot_order(slot: Slot):
    return (slot.date, slot.start_time, slot.slot_id)


# Appointment Store
class AppointmentStore(Repository[Appointment]):
    entity = "Appointment"
    id_prefix = "A"

    def _check(self, appointment: Appointment) -> None:
        if appointment.status is AppointmentStatus.COMPLETED and not appointment.outcome_id:
            raise ValidationError(
                "A completed appointment must reference an outcome",
                field_name="outcome_id",
            )
        if appointment.status is not AppointmentStatus.COMPLETED and appointment.outcome_id:
            raise ValidationError(
                "Only a completed appointment may reference an outcome",
                field_name="outcome_id",
                value=appointment.outcome_id,
            )

    def by_slot(self, slot_id: str) -> Optional[Appointment]:
        """
        The appointment holding a slot.

        Returns the active (REQUESTED/CONFIRMED) appointment if there is one,
        otherwise the most recent appointment that ever referenced the slot.
        """
        on_slot = self.filter(slot_id=slot_id)
        if not on_slot:
            return None
        for appointment in on_slot:
            if appointment.is_active:
                return appointment
        return on_slot[-1]

    def all_for_slot(self, slot_id: str) -> List[Appointment]:
        return self.filter(slot_id=slot_id)

    def details(self, appointment_id: str, slots: SlotStore):
        """Join an appointment with its slot; None if either is missing."""
        appointment = self.get(appointment_id)
        if appointment is None:
            return None
        slot = slots.get(appointment.slot_id)
        if slot is None:
            return None
        return appointment, slot


# Outcome Store
class OutcomeStore(Repository[Outcome]):
    entity = "Outcome"
    id_prefix = "O"


# Prescription Store
class PrescriptionStore(Repository[Prescription]):
    entity = "Prescription"
    id_prefix = "PR"

    def _check(self, prescription: Prescription) -> None:
        if prescription.quantity <= 0:
            raise ValidationError(
                f"Quantity must be greater than zero, got {prescription.quantity}",
                field_name="quantity",
                value=prescription.quantity,
            )

    def for_appointment(self, appointment_id: str) -> List[Prescription]:
        return self.filter(appointment_id=appointment_id)


# Medication Store
class MedicationStore(Repository[Medication]):
    entity = "Medication"
    id_prefix = "M"

    def exists(self, medication_id: str) -> bool:
        return medication_id in self

    def stock_level(self, medication_id: str) -> int:
        return self.require(medication_id).stock_level

    def decrement(self, medication_id: str, quantity: int) -> Medication:
        """Take ``quantity`` units out of stock."""
        medication = self.require(medication_id)
        if quantity > medication.stock_level:
            raise InsufficientStockError(medication_id, quantity, medication.stock_level)
        medication.stock_level -= quantity
        if medication.stock_level <= medication.low_stock_alert_level:
            logger.debug("Medication %s at or below alert level", medication_id)
        return medication


# History Store
class HistoryStore(Repository[History]):
    entity = "History"
    id_prefix = "H"

    def for_patient(self, patient_id: str) -> List[History]:
        """A patient's history records, oldest diagnosis first."""
        return sorted(
            self.filter(patient_id=patient_id),
            key=lambda h: (h.diagnosis_date, h.history_id),
        )


# User Directory
class UserDirectory(Repository[User]):
    entity = "User"
    id_prefix = "U"

    def with_role(self, role: Role) -> List[User]:
        return self.filter(role=role)

    def doctors(self) -> List[User]:
        return self.with_role(Role.DOCTOR)


# Store Container
@dataclass
class Stores:
    """Every store the engine works with, created once per session."""

    slots: SlotStore = field(default_factory=SlotStore)
    appointments: AppointmentStore = field(default_factory=AppointmentStore)
    outcomes: OutcomeStore = field(default_factory=OutcomeStore)
    prescriptions: PrescriptionStore = field(default_factory=PrescriptionStore)
    medications: MedicationStore = field(default_factory=MedicationStore)
    history: HistoryStore = field(default_factory=HistoryStore)
    users: UserDirectory = field(default_factory=UserDirectory)
