"""Shared fixtures for scheduling tests."""

from datetime import date, time

import pytest

from hms_scheduler.engine import SchedulingEngine
from hms_scheduler.models import Medication, Role, Slot, make_user
from hms_scheduler.stores import Stores


@pytest.fixture
def stores():
    """Stores with two doctors, two patients, three medications and four slots."""
    s = Stores()
    s.users.add(make_user("D1", "John Smith", Role.DOCTOR, specialization="Cardiology"))
    s.users.add(make_user("D2", "Emily Clarke", Role.DOCTOR))
    s.users.add(make_user("P1", "Alice Brown", Role.PATIENT, blood_type="A+"))
    s.users.add(make_user("P2", "Bob Stone", Role.PATIENT))
    s.users.add(make_user("PH1", "Mark Lee", Role.PHARMACIST))

    s.medications.add(Medication("M01", "Paracetamol", 100, 20))
    s.medications.add(Medication("M02", "Ibuprofen", 5, 2))
    s.medications.add(Medication("M03", "Amoxicillin", 30, 5))

    s.slots.add(Slot("S1", "D1", date(2024, 6, 1), time(9, 0), time(9, 30)))
    s.slots.add(Slot("S2", "D1", date(2024, 6, 1), time(9, 30), time(10, 0)))
    s.slots.add(Slot("S3", "D1", date(2024, 6, 2), time(9, 0), time(9, 30)))
    s.slots.add(Slot("S4", "D2", date(2024, 6, 1), time(14, 0), time(14, 30)))
    return s


@pytest.fixture
def engine(stores):
    return SchedulingEngine(stores)


@pytest.fixture
def confirmed(engine):
    """A CONFIRMED appointment of P1 with D1 on slot S1."""
    appointment = engine.book_appointment("P1", "D1", "S1")
    return engine.accept_appointment(appointment.appointment_id, doctor_id="D1")


@pytest.fixture
def data_dir(tmp_path):
    """A data directory holding one completed and one requested appointment."""
    files = {
        "slots.csv": (
            "slotID,doctorID,date,startTime,endTime,status\n"
            "S01,D001,2024-06-01,09:00,09:30,COMPLETED\n"
            "S02,D001,2024-06-01,09:30,10:00,PENDING\n"
            "S03,D001,2024-06-01,10:00,10:30,AVAILABLE\n"
        ),
        "appointments.csv": (
            "appointmentID,patientID,doctorID,slotID,status,outcomeID\n"
            "A01,P1001,D001,S01,COMPLETED,O01\n"
            "A02,P1002,D001,S02,REQUESTED,\n"
        ),
        "outcomes.csv": (
            "outcomeID,appointmentID,serviceProvided,prescriptionID,consultationNotes\n"
            "O01,A01,Consultation,PR01;PR02,Stable\n"
        ),
        "prescriptions.csv": (
            "prescriptionID,appointmentID,medicationID,quantity,status,notes\n"
            "PR01,A01,M01,2,PENDING,Take after meals\n"
            "PR02,A01,M02,1,DISPENSED,\n"
        ),
        "medications.csv": (
            "medicationID,medicationName,stockLevel,lowStockAlertLevel\n"
            "M01,Paracetamol,100,20\n"
            "M02,Ibuprofen,50,10\n"
        ),
        "history.csv": (
            "historyID,patientID,diagnosisDate,diagnosis,treatment\n"
            "H01,P1001,2024-05-20,Hypertension,Lifestyle changes\n"
        ),
        "users.csv": (
            "userID,password,role,name,dateOfBirth,gender,contactNumber,emailAddress,bloodType,specialization\n"
            "P1001,password,PATIENT,Alice Brown,1980-05-14,Female,91234567,alice@example.com,A+,\n"
            "P1002,password,PATIENT,Bob Stone,1975-11-22,Male,98765432,bob@example.com,B+,\n"
            "D001,password,DOCTOR,John Smith,1970-02-03,Male,81112222,john@hospital.com,,Cardiology\n"
            "PH001,password,PHARMACIST,Mark Lee,1990-09-09,Male,83334444,mark@hospital.com,,\n"
        ),
    }
    for name, content in files.items():
        (tmp_path / name).write_text(content, encoding="utf-8")
    return tmp_path
