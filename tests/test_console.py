"""Tests for the role menus and the command-line entry point."""

import pytest
from hms_console import create_argument_parser, main
from hms_scheduler.console import (
    AdministratorMenu,
    DoctorMenu,
    PatientMenu,
    PharmacistMenu,
    menu_for,
)
from hms_scheduler.csv_io import APPOINTMENT_FILE, SLOT_FILE, load_stores
from hms_scheduler.models import AppointmentStatus, PrescriptionLine, PrescriptionStatus, Role, SlotStatus


def scripted(*answers):
    """Input function that replays answers, then behaves like a closed stdin."""
    remaining = iter(answers)

    def fake_input(prompt=""):
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError

    return fake_input


@pytest.fixture
def out():
    """Collected console output lines."""
    return []


# Tests for Menu Loop
class TestMenuLoop:
    """Tests for option selection shared by every menu."""

    def test_lists_options_and_logout(self, engine, out):
        """Test options are numbered in braces with Logout last."""
        PharmacistMenu(engine, "PH1", scripted("3"), out.append).run()

        assert "{1} View Pending Prescriptions" in out
        assert "{3} Logout" in out
        assert "Logging out..." in out

    def test_invalid_choice(self, engine, out):
        PharmacistMenu(engine, "PH1", scripted("9", "x", "3"), out.append).run()
        assert out.count("Invalid choice. Please enter a number between 1 and 3.") == 2

    def test_end_of_input_leaves_menu(self, engine, out):
        """Test closed input ends the session without an exception."""
        PatientMenu(engine, "P1", scripted(), out.append).run()
        assert "Logging out..." not in out

    def test_domain_error_printed_and_menu_shown_again(self, engine, out):
        """Test a failed operation prints its reason and re-shows the menu."""
        PatientMenu(engine, "P1", scripted("2", "D1", "S99", "7"), out.append).run()

        assert any(line.startswith("Error: Slot 'S99' not found") for line in out)
        assert out.count("<======= PATIENT MENU =======>") == 2

    def test_menu_for_role(self):
        assert menu_for(Role.DOCTOR) is DoctorMenu
        assert menu_for(Role.ADMINISTRATOR) is AdministratorMenu


# Tests for Patient Menu
class TestPatientMenu:
    """Tests for booking, cancelling and reviewing appointments."""

    def test_schedule_appointment(self, engine, out):
        PatientMenu(engine, "P1", scripted("2", "D1", "S1", "7"), out.append).run()

        assert "Appointment A01 requested. Awaiting doctor approval." in out
        assert engine.get_slot("S1").status is SlotStatus.BOOKED
        assert engine.get_appointment("A01").patient_id == "P1"

    def test_doctor_id_case_insensitive(self, engine, out):
        """Test a lower-case doctor ID books under the doctor's stored ID."""
        PatientMenu(engine, "P1", scripted("2", "d1", "S1", "7"), out.append).run()

        assert engine.get_appointment("A01").doctor_id == "D1"
        assert [a.appointment_id for a in engine.appointments_for_doctor("D1")] == ["A01"]

    def test_doctor_list_shows_specialization(self, engine, out):
        PatientMenu(engine, "P1", scripted("1", "D1", "7"), out.append).run()

        assert any("John Smith" in line and "Cardiology" in line for line in out)

    def test_blank_slot_goes_back(self, engine, out):
        PatientMenu(engine, "P1", scripted("2", "D1", "", "7"), out.append).run()
        assert len(engine.stores.appointments) == 0

    def test_cancel_needs_confirmation(self, engine, out):
        """Test answering no keeps the appointment."""
        engine.book_appointment("P1", "D1", "S1")

        PatientMenu(engine, "P1", scripted("4", "A01", "n", "4", "A01", "y", "7"), out.append).run()

        assert "Appointment A01 cancelled." in out
        assert out.count("Appointment A01 cancelled.") == 1
        assert engine.get_appointment("A01").status is AppointmentStatus.CANCELLED

    def test_cannot_cancel_someone_elses(self, engine, out):
        engine.book_appointment("P2", "D1", "S1")
        engine.book_appointment("P1", "D1", "S2")

        PatientMenu(engine, "P1", scripted("4", "A01", "y", "7"), out.append).run()

        assert any(line.startswith("Error: Appointment does not belong to patient 'P1'") for line in out)
        assert engine.get_appointment("A01").status is AppointmentStatus.REQUESTED

    def test_reschedule(self, engine, confirmed, out):
        PatientMenu(engine, "P1", scripted("3", "A01", "S3", "7"), out.append).run()

        assert engine.get_appointment("A01").slot_id == "S3"
        assert engine.get_appointment("A01").status is AppointmentStatus.REQUESTED
        assert engine.get_slot("S1").status is SlotStatus.AVAILABLE

    def test_past_records_show_outcome(self, engine, confirmed, out):
        engine.complete_appointment("A01", "Consultation", "Stable")

        PatientMenu(engine, "P1", scripted("6", "7"), out.append).run()

        assert "  Service: Consultation" in out
        assert "  Prescriptions: none" in out


# Tests for Doctor Menu
class TestDoctorMenu:
    """Tests for availability, requests and outcomes."""

    def test_set_availability_reprompts_bad_times(self, engine, out):
        """Test a bad start time and an end before start are both re-asked."""
        answers = ("2", "2024-06-05", "25:00", "10:00", "09:00", "10:30", "10")

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        assert "Slot S05 added." in out
        assert sum(1 for line in out if line.startswith("Invalid input:")) == 2
        assert engine.get_slot("S05").status is SlotStatus.AVAILABLE

    def test_accept_request(self, engine, out):
        engine.book_appointment("P1", "D1", "S1")

        DoctorMenu(engine, "D1", scripted("4", "a", "10"), out.append).run()

        assert "Appointment A01 is now CONFIRMED." in out
        assert engine.get_appointment("A01").status is AppointmentStatus.CONFIRMED

    def test_decline_request(self, engine, out):
        engine.book_appointment("P1", "D1", "S1")

        DoctorMenu(engine, "D1", scripted("4", "d", "10"), out.append).run()

        assert engine.get_appointment("A01").status is AppointmentStatus.CANCELLED
        assert engine.get_slot("S1").status is SlotStatus.AVAILABLE

    def test_record_outcome_with_prescription(self, engine, confirmed, out):
        answers = ("6", "A01", "Consultation", "Stable", "y", "M01", "2", "after meals", "n", "10")

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        assert "Appointment A01 completed. Outcome O01 with 1 prescription(s)." in out
        (prescription,) = engine.get_prescriptions_by_appointment("A01")
        assert prescription.quantity == 2
        assert prescription.notes == "after meals"
        assert prescription.status is PrescriptionStatus.PENDING

    def test_duplicate_medication_reprompted(self, engine, confirmed, out):
        """Test the same medication twice is refused at entry time."""
        answers = (
            "6", "A01", "Consultation", "Stable",
            "y", "M01", "2", "",
            "y", "M01", "1", "",
            "n", "10",
        )

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        assert any("already prescribed" in line for line in out)
        assert len(engine.get_prescriptions_by_appointment("A01")) == 1

    def test_no_prescriptions(self, engine, confirmed, out):
        DoctorMenu(engine, "D1", scripted("6", "A01", "Check-up", "Fine", "n", "10"), out.append).run()

        assert engine.get_outcome("O01").prescription_ids == []

    def test_update_outcome_and_remove_prescription(self, engine, confirmed, out):
        engine.complete_appointment("A01", "Consultation", "Stable", [PrescriptionLine("M01", 2)])
        answers = ("7", "A01", "", "Improving", "r", "PR01", "f", "10")

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        outcome = engine.get_outcome("O01")
        assert outcome.service_provided == "Consultation"
        assert outcome.consultation_notes == "Improving"
        assert outcome.prescription_ids == []
        assert "Outcome O01 updated." in out

    def test_withdraw_slot(self, engine, out):
        DoctorMenu(engine, "D1", scripted("3", "S3", "10"), out.append).run()

        assert "Slot S3 withdrawn." in out
        assert engine.get_slot("S3") is None

    def test_view_medical_records(self, engine, confirmed, out):
        """Test patients under care are listed and their history shown."""
        engine.add_medical_history("P1", "Asthma", "Inhaler", diagnosis_date="2024-01-10")

        DoctorMenu(engine, "D1", scripted("8", "P1", "10"), out.append).run()

        assert "P1       Alice Brown" in out
        assert "H01    2024-01-10  Asthma: Inhaler" in out

    def test_no_patients_under_care(self, engine, out):
        engine.book_appointment("P1", "D1", "S1")

        DoctorMenu(engine, "D1", scripted("8", "10"), out.append).run()

        assert "No patients under your care." in out

    def test_add_first_medical_record(self, engine, confirmed, out):
        """Test a patient without history is offered a new record."""
        answers = ("9", "P1", "y", "Migraine", "Rest and fluids", "10")

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        assert "No medical history recorded." in out
        assert "History H01 added." in out
        record = engine.stores.history.get("H01")
        assert record.patient_id == "P1"
        assert record.diagnosis == "Migraine"
        assert record.treatment == "Rest and fluids"

    def test_update_medical_record_keeps_blank_fields(self, engine, confirmed, out):
        engine.add_medical_history("P1", "Asthma", "Inhaler")
        answers = ("9", "P1", "H01", "", "Inhaler and steroids", "10")

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        record = engine.stores.history.get("H01")
        assert record.diagnosis == "Asthma"
        assert record.treatment == "Inhaler and steroids"
        assert "History H01 updated." in out

    def test_update_other_patients_record_refused(self, engine, confirmed, out):
        engine.add_medical_history("P2", "Flu", "Rest")
        engine.add_medical_history("P1", "Asthma", "Inhaler")

        DoctorMenu(engine, "D1", scripted("9", "P1", "H01", "10"), out.append).run()

        assert "History H01 is not one of this patient's records." in out
        assert engine.stores.history.get("H01").diagnosis == "Flu"

    def test_add_record_alongside_existing(self, engine, confirmed, out):
        engine.add_medical_history("P1", "Asthma", "Inhaler")
        answers = ("9", "P1", "new", "Sprained ankle", "Rest", "10")

        DoctorMenu(engine, "D1", scripted(*answers), out.append).run()

        assert [h.diagnosis for h in engine.patient_medical_history("P1")] == ["Asthma", "Sprained ankle"]

    def test_patient_not_under_care_refused(self, engine, confirmed, out):
        """Test a doctor cannot open records of a patient they have not seen."""
        DoctorMenu(engine, "D1", scripted("9", "P2", "10"), out.append).run()

        assert any(line.startswith("Error: Patient does not belong to doctor 'D1'") for line in out)
        assert len(engine.stores.history) == 0


# Tests for Pharmacist and Administrator Menus
class TestStaffMenus:
    """Tests for dispensing and reporting."""

    def test_dispense(self, engine, confirmed, out):
        engine.complete_appointment("A01", "Consultation", "Stable", [PrescriptionLine("M01", 2)])

        PharmacistMenu(engine, "PH1", scripted("1", "2", "PR01", "3"), out.append).run()

        assert any(line.startswith("PR01") and "(stock 100)" in line for line in out)
        assert "Prescription PR01 dispensed." in out
        assert engine.stores.medications.stock_level("M01") == 98

    def test_admin_status_filter(self, engine, confirmed, out):
        engine.book_appointment("P2", "D1", "S2")

        AdministratorMenu(engine, "AD1", scripted("1", "bogus", "confirmed", "2"), out.append).run()

        listed = [line for line in out if line.startswith("A0")]
        assert len(listed) == 1
        assert listed[0].startswith("A01")
        assert "Invalid input. Please try again." in out


# Tests for Command-Line Entry Point
class TestMain:
    """Tests for argument handling, loading and saving."""

    def test_parser_defaults(self):
        args = create_argument_parser().parse_args(["--user", "P1001"])

        assert args.user_id == "P1001"
        assert args.data_dir is None
        assert args.no_save is False

    def test_user_required(self, data_dir):
        """Test omitting --user without --init is a usage error."""
        with pytest.raises(SystemExit) as exc:
            main(["--data-dir", str(data_dir)])
        assert exc.value.code == 2

    def test_init(self, tmp_path, out):
        target = tmp_path / "new"

        assert main(["--init", "--data-dir", str(target)], output=out.append) == 0
        assert (target / SLOT_FILE).exists()

    def test_unknown_user(self, data_dir, capsys):
        assert main(["--user", "NOPE", "--data-dir", str(data_dir)]) == 1
        assert "Unknown user: NOPE" in capsys.readouterr().err

    def test_missing_data_file(self, tmp_path, capsys):
        assert main(["--user", "P1001", "--data-dir", str(tmp_path)]) == 1
        assert "Data file error" in capsys.readouterr().err

    def test_data_dir_from_environment(self, data_dir, monkeypatch, out):
        monkeypatch.setenv("HMS_DATA_DIR", str(data_dir))

        assert main(["--user", "P1001", "--no-save"], input_func=scripted("7"), output=out.append) == 0
        assert "Welcome, Alice Brown (Patient)" in out

    def test_session_saved(self, data_dir, out):
        """Test a booking made in the menu is on disk after logout."""
        code = main(
            ["--user", "P1001", "--data-dir", str(data_dir)],
            input_func=scripted("2", "D001", "S03", "7"),
            output=out.append,
        )

        assert code == 0
        stores = load_stores(data_dir)
        assert stores.appointments.get("A03").slot_id == "S03"
        assert stores.slots.get("S03").status is SlotStatus.BOOKED

    def test_no_save(self, data_dir, out):
        before = (data_dir / APPOINTMENT_FILE).read_text(encoding="utf-8")

        main(
            ["--user", "P1001", "--data-dir", str(data_dir), "--no-save"],
            input_func=scripted("2", "D001", "S03", "7"),
            output=out.append,
        )

        assert (data_dir / APPOINTMENT_FILE).read_text(encoding="utf-8") == before

    def test_verbose_no_save_logged(self, data_dir, out, capsys):
        """Test the discarded-changes notice reaches stderr when verbose."""
        code = main(
            ["--user", "P1001", "--data-dir", str(data_dir), "--no-save", "-v"],
            input_func=scripted("7"),
            output=out.append,
        )

        assert code == 0
        assert "Changes discarded (--no-save)" in capsys.readouterr().err
