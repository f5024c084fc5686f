"""
Custom exceptions for scheduling operations.

Every failure of a store or engine operation is reported through one of
these types so the console layer can print the reason and re-prompt.
"""

from typing import Optional


# Base Exception
class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        record_id: Optional[str] = None,
    ):
        self.entity = entity
        self.record_id = record_id

        details = []
        if entity:
            details.append(f"entity={entity}")
        if record_id:
            details.append(f"id={record_id}")

        full_message = message
        if details:
            full_message = f"{message} [{', '.join(details)}]"

        super().__init__(full_message)


# Validation Error
class ValidationError(SchedulingError):
    """Raised when input is malformed or violates a field constraint."""

    def __init__(self, message: str, field_name: Optional[str] = None, value=None):
        self.field_name = field_name
        self.value = value
        super().__init__(message)


# Record Not Found Error
class RecordNotFoundError(SchedulingError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} '{record_id}' not found", entity, record_id)


# Duplicate Record Error
class DuplicateRecordError(SchedulingError):
    """Raised when adding a record whose ID is already taken."""

    def __init__(self, entity: str, record_id: str):
        super().__init__(f"{entity} '{record_id}' already exists", entity, record_id)


# Invalid Status Error
class InvalidStatusError(SchedulingError):
    """Raised when a record is not in a status that allows the requested action."""

    def __init__(self, entity: str, record_id: str, status, action: str):
        self.status = status
        self.action = action
        status_name = getattr(status, "value", status)
        super().__init__(
            f"Cannot {action}: {entity.lower()} is {status_name}",
            entity,
            record_id,
        )


# Slot Unavailable Error
class SlotUnavailableError(InvalidStatusError):
    """Raised when booking a slot that is not AVAILABLE."""

    def __init__(self, slot_id: str, status):
        super().__init__("Slot", slot_id, status, "book slot")


# Duplicate Medication Error
class DuplicateMedicationError(SchedulingError):
    """Raised when a medication is prescribed twice for one appointment."""

    def __init__(self, appointment_id: str, medication_id: str):
        self.medication_id = medication_id
        super().__init__(
            f"Medication '{medication_id}' is already prescribed for this appointment",
            "Appointment",
            appointment_id,
        )


# Insufficient Stock Error
class InsufficientStockError(SchedulingError):
    """Raised when dispensing more units than the medication has in stock."""

    def __init__(self, medication_id: str, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock: requested {requested}, available {available}",
            "Medication",
            medication_id,
        )


# Ownership Error
class OwnershipError(SchedulingError):
    """Raised when a record belongs to a different doctor or patient."""

    def __init__(self, entity: str, record_id: str, owner_role: str, user_id: str):
        self.owner_role = owner_role
        self.user_id = user_id
        super().__init__(
            f"{entity} does not belong to {owner_role} '{user_id}'",
            entity,
            record_id,
        )


# Data File Error
class DataFileError(SchedulingError):
    """Raised when a data file cannot be read or written."""

    def __init__(self, filepath: str, reason: str):
        self.filepath = filepath
        self.reason = reason
        super().__init__(f"Cannot access data file '{filepath}': {reason}")
