"""
CSV persistence for the record stores.

Every store is loaded in full at start-up and written back in full at
shutdown. Each file has a fixed header; rows that cannot be decoded are
skipped and reported rather than aborting the load.
"""

import csv
import logging
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple, Union

from .exceptions import DataFileError, SchedulingError, ValidationError
from .models import (
    Appointment,
    AppointmentStatus,
    History,
    Medication,
    Outcome,
    Prescription,
    PrescriptionStatus,
    Role,
    Slot,
    SlotStatus,
    make_user,
)
from .stores import Repository, Stores
from .timeutils import format_date, format_time, parse_date, parse_time

logger = logging.getLogger(__name__)


# Common encodings used in exported CSV files
ENCODINGS_TO_TRY = ["utf-8-sig", "latin-1", "cp1252"]

# Stored in the prescriptionID column when an outcome has no prescriptions
NO_PRESCRIPTION = "NIL"
PRESCRIPTION_SEPARATOR = ";"

# Legacy slot status written by older versions; read as BOOKED
LEGACY_SLOT_STATUSES = {"PENDING": SlotStatus.BOOKED}

SLOT_FILE = "slots.csv"
APPOINTMENT_FILE = "appointments.csv"
OUTCOME_FILE = "outcomes.csv"
PRESCRIPTION_FILE = "prescriptions.csv"
MEDICATION_FILE = "medications.csv"
HISTORY_FILE = "history.csv"
USER_FILE = "users.csv"

SLOT_COLUMNS = ["slotID", "doctorID", "date", "startTime", "endTime", "status"]
APPOINTMENT_COLUMNS = ["appointmentID", "patientID", "doctorID", "slotID", "status", "outcomeID"]
OUTCOME_COLUMNS = ["outcomeID", "appointmentID", "serviceProvided", "prescriptionID", "consultationNotes"]
PRESCRIPTION_COLUMNS = ["prescriptionID", "appointmentID", "medicationID", "quantity", "status", "notes"]
MEDICATION_COLUMNS = ["medicationID", "medicationName", "stockLevel", "lowStockAlertLevel"]
HISTORY_COLUMNS = ["historyID", "patientID", "diagnosisDate", "diagnosis", "treatment"]
USER_COLUMNS = [
    "userID",
    "password",
    "role",
    "name",
    "dateOfBirth",
    "gender",
    "contactNumber",
    "emailAddress",
    "bloodType",
    "specialization",
]


# Prescription ID list <-> column value
def join_prescription_ids(prescription_ids: Sequence[str]) -> str:
    if not prescription_ids:
        return NO_PRESCRIPTION
    return PRESCRIPTION_SEPARATOR.join(prescription_ids)


def split_prescription_ids(value: str) -> List[str]:
    if not value or value.strip().upper() == NO_PRESCRIPTION:
        return []
    return [p.strip() for p in value.split(PRESCRIPTION_SEPARATOR) if p.strip()]


# Row decoders
def _field(row: Dict[str, str], name: str) -> str:
    return (row.get(name) or "").strip()


def _status(enum_cls, value: str, legacy: Dict = None):
    value = value.upper()
    if legacy and value in legacy:
        return legacy[value]
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {enum_cls.__name__} '{value}'", value=value)


def _int(value: str, field_name: str, default: int = None) -> int:
    if not value and default is not None:
        return default
    try:
        return int(float(value))
    except ValueError:
        raise ValidationError(f"Invalid number '{value}'", field_name=field_name, value=value)


def slot_from_row(row: Dict[str, str]) -> Slot:
    return Slot(
        slot_id=_field(row, "slotID"),
        doctor_id=_field(row, "doctorID"),
        date=parse_date(_field(row, "date")),
        start_time=parse_time(_field(row, "startTime")),
        end_time=parse_time(_field(row, "endTime")),
        status=_status(SlotStatus, _field(row, "status"), LEGACY_SLOT_STATUSES),
    )


def slot_to_row(slot: Slot) -> List[str]:
    return [
        slot.slot_id,
        slot.doctor_id,
        format_date(slot.date),
        format_time(slot.start_time),
        format_time(slot.end_time),
        slot.status.value,
    ]


def appointment_from_row(row: Dict[str, str]) -> Appointment:
    return Appointment(
        appointment_id=_field(row, "appointmentID"),
        patient_id=_field(row, "patientID"),
        doctor_id=_field(row, "doctorID"),
        slot_id=_field(row, "slotID"),
        status=_status(AppointmentStatus, _field(row, "status")),
        outcome_id=_field(row, "outcomeID") or None,
    )


def appointment_to_row(appointment: Appointment) -> List[str]:
    return [
        appointment.appointment_id,
        appointment.patient_id,
        appointment.doctor_id,
        appointment.slot_id,
        appointment.status.value,
        appointment.outcome_id or "",
    ]


def outcome_from_row(row: Dict[str, str]) -> Outcome:
    return Outcome(
        outcome_id=_field(row, "outcomeID"),
        appointment_id=_field(row, "appointmentID"),
        service_provided=_field(row, "serviceProvided"),
        consultation_notes=_field(row, "consultationNotes"),
        prescription_ids=split_prescription_ids(_field(row, "prescriptionID")),
    )


def outcome_to_row(outcome: Outcome) -> List[str]:
    return [
        outcome.outcome_id,
        outcome.appointment_id,
        outcome.service_provided,
        join_prescription_ids(outcome.prescription_ids),
        outcome.consultation_notes,
    ]


def prescription_from_row(row: Dict[str, str]) -> Prescription:
    return Prescription(
        prescription_id=_field(row, "prescriptionID"),
        appointment_id=_field(row, "appointmentID"),
        medication_id=_field(row, "medicationID"),
        quantity=_int(_field(row, "quantity"), "quantity"),
        status=_status(PrescriptionStatus, _field(row, "status")),
        notes=_field(row, "notes"),
    )


def prescription_to_row(prescription: Prescription) -> List[str]:
    return [
        prescription.prescription_id,
        prescription.appointment_id,
        prescription.medication_id,
        str(prescription.quantity),
        prescription.status.value,
        prescription.notes,
    ]


def medication_from_row(row: Dict[str, str]) -> Medication:
    return Medication(
        medication_id=_field(row, "medicationID"),
        name=_field(row, "medicationName"),
        stock_level=_int(_field(row, "stockLevel"), "stockLevel", default=0),
        low_stock_alert_level=_int(_field(row, "lowStockAlertLevel"), "lowStockAlertLevel", default=0),
    )


def medication_to_row(medication: Medication) -> List[str]:
    return [
        medication.medication_id,
        medication.name,
        str(medication.stock_level),
        str(medication.low_stock_alert_level),
    ]


def history_from_row(row: Dict[str, str]) -> History:
    return History(
        history_id=_field(row, "historyID"),
        patient_id=_field(row, "patientID"),
        diagnosis_date=parse_date(_field(row, "diagnosisDate")),
        diagnosis=_field(row, "diagnosis"),
        treatment=_field(row, "treatment"),
    )


def history_to_row(history: History) -> List[str]:
    return [
        history.history_id,
        history.patient_id,
        format_date(history.diagnosis_date),
        history.diagnosis,
        history.treatment,
    ]


def user_from_row(row: Dict[str, str]):
    # Credentials stay in the file; they are never loaded into memory
    return make_user(
        _field(row, "userID"),
        _field(row, "name"),
        _status(Role, _field(row, "role")),
        date_of_birth=_field(row, "dateOfBirth"),
        gender=_field(row, "gender"),
        contact_number=_field(row, "contactNumber"),
        email_address=_field(row, "emailAddress"),
        blood_type=_field(row, "bloodType"),
        specialization=_field(row, "specialization"),
    )


# (file name, header, row decoder, row encoder, Stores attribute)
TABLES: List[Tuple[str, List[str], Callable, Callable, str]] = [
    (SLOT_FILE, SLOT_COLUMNS, slot_from_row, slot_to_row, "slots"),
    (APPOINTMENT_FILE, APPOINTMENT_COLUMNS, appointment_from_row, appointment_to_row, "appointments"),
    (OUTCOME_FILE, OUTCOME_COLUMNS, outcome_from_row, outcome_to_row, "outcomes"),
    (PRESCRIPTION_FILE, PRESCRIPTION_COLUMNS, prescription_from_row, prescription_to_row, "prescriptions"),
    (MEDICATION_FILE, MEDICATION_COLUMNS, medication_from_row, medication_to_row, "medications"),
    (HISTORY_FILE, HISTORY_COLUMNS, history_from_row, history_to_row, "history"),
]


# Read CSV File
def read_csv_rows(filepath: Union[str, Path]) -> List[Dict[str, str]]:
    """
    Read a CSV file with a header row into a list of dicts.

    Attempts multiple encodings to handle files saved by spreadsheet tools.

    Raises:
        DataFileError: If the file is missing or cannot be decoded
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise DataFileError(str(filepath), "file does not exist")

    if not filepath.is_file():
        raise DataFileError(str(filepath), "path is not a file")

    last_error = None
    for encoding in ENCODINGS_TO_TRY:
        try:
            with open(filepath, "r", encoding=encoding, newline="") as f:
                return list(csv.DictReader(f))
        except UnicodeDecodeError as e:
            last_error = e
            continue
        except (IOError, csv.Error) as e:
            raise DataFileError(str(filepath), str(e))

    raise DataFileError(
        str(filepath),
        f"could not decode file with any supported encoding: {last_error}",
    )


# Write CSV File
def write_csv_rows(
    filepath: Union[str, Path], header: Sequence[str], rows: Sequence[Sequence[str]]
) -> None:
    """Overwrite a CSV file with a header and rows."""
    filepath = Path(filepath)
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
    except IOError as e:
        raise DataFileError(str(filepath), str(e))


# Load into a store
def load_table(filepath: Union[str, Path], decoder: Callable, store: Repository) -> int:
    """
    Replace a store's contents with the records in a CSV file.

    Returns:
        Number of rows skipped because they could not be decoded
    """
    store.clear()
    skipped = 0
    rows = read_csv_rows(filepath)
    for line_number, row in enumerate(rows, 2):
        try:
            store.add(decoder(row))
        except SchedulingError as e:
            skipped += 1
            logger.warning("Skipping %s line %d: %s", Path(filepath).name, line_number, e)
    logger.info("Loaded %d record(s) from %s", len(store), filepath)
    return skipped


def save_table(filepath: Union[str, Path], header: Sequence[str], encoder: Callable, store: Repository) -> None:
    write_csv_rows(filepath, header, [encoder(record) for record in store])
    logger.info("Saved %d record(s) to %s", len(store), filepath)


# Load / Save every store
def load_stores(data_dir: Union[str, Path], stores: Stores = None) -> Stores:
    """
    Load every data file in ``data_dir`` into a Stores container.

    users.csv is optional; every other file must exist.

    Raises:
        DataFileError: If a required file is missing or unreadable
    """
    data_dir = Path(data_dir)
    stores = stores or Stores()

    for filename, _, decoder, _, attr in TABLES:
        load_table(data_dir / filename, decoder, getattr(stores, attr))

    user_file = data_dir / USER_FILE
    if user_file.exists():
        load_table(user_file, user_from_row, stores.users)
    else:
        logger.info("No %s in %s; user directory is empty", USER_FILE, data_dir)

    _warn_missing_outcomes(stores)
    return stores


def _warn_missing_outcomes(stores: Stores) -> None:
    """Log a WARNING for each completed appointment whose outcome is not loaded."""
    for appointment in stores.appointments:
        if appointment.outcome_id and appointment.outcome_id not in stores.outcomes:
            logger.warning(
                "Appointment %s references missing outcome %s",
                appointment.appointment_id,
                appointment.outcome_id,
            )


def save_stores(data_dir: Union[str, Path], stores: Stores) -> None:
    """Write every mutable store back to ``data_dir``. users.csv is never rewritten."""
    data_dir = Path(data_dir)
    for filename, header, _, encoder, attr in TABLES:
        save_table(data_dir / filename, header, encoder, getattr(stores, attr))


def init_data_dir(data_dir: Union[str, Path]) -> None:
    """Create empty data files (header only) for any that are missing."""
    data_dir = Path(data_dir)
    for filename, header, _, _, _ in TABLES:
        path = data_dir / filename
        if not path.exists():
            write_csv_rows(path, header, [])
            logger.info("Created %s", path)
