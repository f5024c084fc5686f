"""
Console menus for each user role.

Menus only collect and check input, call the engine and print results.
Input and output functions are injectable so a session can be scripted.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .engine import SchedulingEngine
from .exceptions import SchedulingError, ValidationError
from .models import AppointmentStatus, DoctorProfile, PrescriptionLine, Role, Slot
from .timeutils import format_date, format_time, parse_date, parse_time, parse_time_range

logger = logging.getLogger(__name__)


def _slot_label(slot: Slot) -> str:
    return (
        f"{slot.slot_id:<6} {format_date(slot.date)} "
        f"{format_time(slot.start_time)}-{format_time(slot.end_time)}  {slot.status.value}"
    )


# Base Menu
class Menu:
    """
    Numbered-option menu loop.

    Subclasses list their options as (label, method name) pairs; a final
    Logout option is appended automatically. Domain errors raised by an
    option are printed and the menu is shown again.
    """

    title = "MENU"
    options: Sequence[Tuple[str, str]] = ()

    def __init__(
        self,
        engine: SchedulingEngine,
        user_id: str,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.engine = engine
        self.user_id = user_id
        self.input_func = input_func
        self.output = output

    def run(self) -> None:
        """Show the menu until the user logs out or input ends."""
        try:
            while True:
                self.header(self.title)
                for number, (label, _) in enumerate(self.options, 1):
                    self.output(f"{{{number}}} {label}")
                logout = len(self.options) + 1
                self.output(f"{{{logout}}} Logout")

                choice = self.ask("Enter your choice: ")
                if choice == str(logout):
                    self.output("Logging out...")
                    return
                if not choice.isdigit() or not (1 <= int(choice) <= len(self.options)):
                    self.output(f"Invalid choice. Please enter a number between 1 and {logout}.")
                    continue

                _, method_name = self.options[int(choice) - 1]
                try:
                    getattr(self, method_name)()
                except SchedulingError as e:
                    logger.debug("%s failed: %s", method_name, e)
                    self.output(f"Error: {e}")
        except EOFError:
            self.output("")

    # -- Input helpers ------------------------------------------------------

    def header(self, text: str) -> None:
        self.output("")
        self.output(f"<======= {text} =======>")

    def ask(self, prompt: str) -> str:
        return self.input_func(prompt).strip()

    def prompt(
        self,
        prompt: str,
        validator: Optional[Callable[[str], object]] = None,
        allow_blank: bool = False,
    ) -> str:
        """
        Ask until the answer passes ``validator``.

        The validator may return False or raise ValidationError to reject.
        A blank answer is returned as-is when ``allow_blank`` is set.
        """
        while True:
            answer = self.ask(prompt)
            if not answer:
                if allow_blank:
                    return ""
                self.output("Input is required. Please try again.")
                continue
            if validator is None:
                return answer
            try:
                if validator(answer) is not False:
                    return answer
                self.output("Invalid input. Please try again.")
            except ValidationError as e:
                self.output(f"Invalid input: {e}")

    def confirm(self, prompt: str) -> bool:
        while True:
            answer = self.ask(f"{prompt} (y/n): ").lower()
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False
            self.output("Please answer 'y' or 'n'.")

    def ask_quantity(self, prompt: str) -> int:
        answer = self.prompt(prompt, lambda a: a.isdigit() and int(a) > 0)
        return int(answer)

    # -- Output helpers -----------------------------------------------------

    def show_slots(self, slots: List[Slot], empty: str = "No slots found.") -> None:
        if not slots:
            self.output(empty)
            return
        for slot in slots:
            self.output(_slot_label(slot))

    def show_appointments(self, appointments, empty: str = "No appointments found.") -> None:
        if not appointments:
            self.output(empty)
            return
        for appointment in appointments:
            slot = self.engine.get_slot(appointment.slot_id)
            when = ""
            if slot is not None:
                when = f"{format_date(slot.date)} {format_time(slot.start_time)}"
            self.output(
                f"{appointment.appointment_id:<6} patient={appointment.patient_id} "
                f"doctor={appointment.doctor_id} {when}  {appointment.status.value}"
            )

    def show_record(self, appointment_id: str) -> None:
        record = self.engine.appointment_record(appointment_id)
        if record is None:
            self.output(f"No details for appointment {appointment_id}.")
            return
        self.show_appointments([record.appointment])
        if record.outcome is None:
            return
        self.output(f"  Service: {record.outcome.service_provided}")
        self.output(f"  Notes:   {record.outcome.consultation_notes}")
        if not record.prescriptions:
            self.output("  Prescriptions: none")
        for p in record.prescriptions:
            self.output(f"  {p.prescription_id} {p.medication_id} x{p.quantity} {p.status.value} {p.notes}")


# Patient Menu
class PatientMenu(Menu):
    title = "PATIENT MENU"
    options = (
        ("View Available Appointment Slots", "view_available_slots"),
        ("Schedule an Appointment", "schedule_appointment"),
        ("Reschedule an Appointment", "reschedule_appointment"),
        ("Cancel an Appointment", "cancel_appointment"),
        ("View Scheduled Appointments", "view_scheduled_appointments"),
        ("View Past Appointment Outcome Records", "view_past_records"),
    )

    def choose_doctor(self) -> str:
        doctors = self.engine.stores.users.doctors()
        for doctor in doctors:
            specialization = ""
            if isinstance(doctor.profile, DoctorProfile):
                specialization = doctor.profile.specialization or ""
            self.output(f"{doctor.user_id:<6} {doctor.name}  {specialization}")
        return self.prompt("Enter Doctor ID: ")

    def view_available_slots(self) -> None:
        self.header("AVAILABLE SLOTS")
        doctor_id = self.choose_doctor()
        self.show_slots(self.engine.available_slots(doctor_id), "No available slots for this doctor.")

    def schedule_appointment(self) -> None:
        self.header("SCHEDULE AN APPOINTMENT")
        doctor_id = self.choose_doctor()
        slots = self.engine.available_slots(doctor_id)
        if not slots:
            self.output("No available slots for this doctor.")
            return
        self.show_slots(slots)
        slot_id = self.prompt("Enter Slot ID (or press Enter to go back): ", allow_blank=True)
        if not slot_id:
            return
        appointment = self.engine.book_appointment(self.user_id, doctor_id, slot_id)
        self.output(f"Appointment {appointment.appointment_id} requested. Awaiting doctor approval.")

    def reschedule_appointment(self) -> None:
        self.header("RESCHEDULE AN APPOINTMENT")
        scheduled = self.engine.scheduled_appointments(self.user_id)
        if not scheduled:
            self.output("You have no scheduled appointments.")
            return
        self.show_appointments(scheduled)
        appointment_id = self.prompt("Enter Appointment ID to reschedule (or press Enter to go back): ", allow_blank=True)
        if not appointment_id:
            return
        appointment = self.engine.get_appointment(appointment_id)
        if appointment is None:
            self.output(f"Appointment {appointment_id} not found.")
            return
        slots = self.engine.available_slots(appointment.doctor_id)
        if not slots:
            self.output("No other available slots for this doctor.")
            return
        self.show_slots(slots)
        slot_id = self.prompt("Enter new Slot ID: ")
        updated = self.engine.reschedule_appointment(appointment_id, slot_id, patient_id=self.user_id)
        self.output(f"Appointment {updated.appointment_id} moved to slot {updated.slot_id}. Awaiting doctor approval.")

    def cancel_appointment(self) -> None:
        self.header("CANCEL AN APPOINTMENT")
        scheduled = self.engine.scheduled_appointments(self.user_id)
        if not scheduled:
            self.output("You have no scheduled appointments.")
            return
        self.show_appointments(scheduled)
        appointment_id = self.prompt("Enter Appointment ID to cancel (or press Enter to go back): ", allow_blank=True)
        if not appointment_id:
            return
        if not self.confirm(f"Cancel appointment {appointment_id}?"):
            return
        self.engine.cancel_appointment(appointment_id, patient_id=self.user_id)
        self.output(f"Appointment {appointment_id} cancelled.")

    def view_scheduled_appointments(self) -> None:
        self.header("SCHEDULED APPOINTMENTS")
        self.show_appointments(self.engine.scheduled_appointments(self.user_id))

    def view_past_records(self) -> None:
        self.header("PAST APPOINTMENT OUTCOME RECORDS")
        past = self.engine.past_appointments(self.user_id)
        if not past:
            self.output("No past appointments.")
        for appointment in past:
            self.show_record(appointment.appointment_id)


# Doctor Menu
class DoctorMenu(Menu):
    title = "DOCTOR MENU"
    options = (
        ("View Personal Schedule", "view_schedule"),
        ("Set Availability for Appointments", "set_availability"),
        ("Withdraw an Available Slot", "withdraw_slot"),
        ("Accept or Decline Appointment Requests", "manage_requests"),
        ("View Upcoming Appointments", "view_upcoming"),
        ("Record Appointment Outcome", "record_outcome"),
        ("Update Appointment Outcome", "update_outcome"),
        ("View Patient Medical Records", "view_medical_records"),
        ("Update Patient Medical Records", "update_medical_records"),
    )

    def view_schedule(self) -> None:
        self.header("PERSONAL SCHEDULE")
        schedule = self.engine.doctor_schedule(self.user_id)
        if not schedule:
            self.output("Your schedule is empty.")
        for slot, appointment in schedule:
            holder = f"  {appointment.appointment_id} ({appointment.patient_id})" if appointment else ""
            self.output(_slot_label(slot) + holder)

    def set_availability(self) -> None:
        self.header("SET AVAILABILITY")
        on_date = self.prompt("Enter date (yyyy-MM-dd): ", parse_date)
        start = self.prompt("Enter start time (HH:mm): ", parse_time)
        end = self.prompt(
            "Enter end time (HH:mm): ",
            lambda value: parse_time_range(start, value),
        )
        slot = self.engine.set_availability(self.user_id, on_date, start, end)
        self.output(f"Slot {slot.slot_id} added.")

    def withdraw_slot(self) -> None:
        self.header("WITHDRAW SLOT")
        slots = self.engine.available_slots(self.user_id)
        if not slots:
            self.output("You have no available slots.")
            return
        self.show_slots(slots)
        slot_id = self.prompt("Enter Slot ID to withdraw (or press Enter to go back): ", allow_blank=True)
        if not slot_id:
            return
        self.engine.withdraw_slot(self.user_id, slot_id)
        self.output(f"Slot {slot_id} withdrawn.")

    def manage_requests(self) -> None:
        self.header("APPOINTMENT REQUESTS")
        requests = self.engine.appointments_for_doctor(self.user_id, AppointmentStatus.REQUESTED)
        if not requests:
            self.output("No pending appointment requests.")
            return
        for appointment in requests:
            self.show_appointments([appointment])
            choice = self.prompt(
                "Accept (a), decline (d) or skip (s)? ",
                lambda a: a.lower() in ("a", "d", "s"),
            ).lower()
            if choice == "s":
                continue
            updated = self.engine.respond_to_request(
                appointment.appointment_id, choice == "a", doctor_id=self.user_id
            )
            self.output(f"Appointment {updated.appointment_id} is now {updated.status.value}.")

    def view_upcoming(self) -> None:
        self.header("UPCOMING APPOINTMENTS")
        self.show_appointments(
            self.engine.appointments_for_doctor(self.user_id, AppointmentStatus.CONFIRMED),
            "No upcoming appointments.",
        )

    def collect_prescriptions(self, appointment_id: str) -> List[PrescriptionLine]:
        """Prompt for prescription lines, re-prompting on each bad line."""
        lines: List[PrescriptionLine] = []
        while self.confirm("Add a prescription?" if lines else "Does the patient require any prescriptions?"):
            medication_id = self.prompt("Enter Medication ID: ")
            quantity = self.ask_quantity("Enter quantity: ")
            notes = self.ask("Enter notes (optional): ")
            line = PrescriptionLine(medication_id, quantity, notes)
            try:
                self.engine.validate_prescription_line(
                    appointment_id, line, pending=[l.medication_id for l in lines]
                )
            except SchedulingError as e:
                self.output(f"Error: {e}")
                continue
            lines.append(line)
        return lines

    def record_outcome(self) -> None:
        self.header("RECORD APPOINTMENT OUTCOME")
        confirmed = self.engine.appointments_for_doctor(self.user_id, AppointmentStatus.CONFIRMED)
        if not confirmed:
            self.output("No confirmed appointments to complete.")
            return
        self.show_appointments(confirmed)
        appointment_id = self.prompt("Enter Appointment ID (or press Enter to go back): ", allow_blank=True)
        if not appointment_id:
            return
        service = self.prompt("Enter service provided: ")
        notes = self.prompt("Enter consultation notes: ")
        lines = self.collect_prescriptions(appointment_id)

        result = self.engine.complete_appointment(
            appointment_id, service, notes, lines, doctor_id=self.user_id
        )
        for rejected in result.rejected:
            self.output(f"Prescription for {rejected.line.medication_id} not recorded: {rejected.reason}")
        self.output(
            f"Appointment {appointment_id} completed. Outcome {result.outcome.outcome_id} "
            f"with {len(result.prescriptions)} prescription(s)."
        )

    def update_outcome(self) -> None:
        self.header("UPDATE APPOINTMENT OUTCOME")
        completed = self.engine.appointments_for_doctor(self.user_id, AppointmentStatus.COMPLETED)
        if not completed:
            self.output("No completed appointments.")
            return
        self.show_appointments(completed)
        appointment_id = self.prompt("Enter Appointment ID (or press Enter to go back): ", allow_blank=True)
        if not appointment_id:
            return
        appointment = self.engine.get_appointment(appointment_id)
        if appointment is None or not appointment.outcome_id:
            self.output(f"Appointment {appointment_id} has no outcome.")
            return
        outcome = self.engine.get_outcome(appointment.outcome_id)

        self.output(f"Current service: {outcome.service_provided}")
        service = self.prompt("Enter new service (or press Enter to keep current): ", allow_blank=True)
        self.output(f"Current notes: {outcome.consultation_notes}")
        notes = self.prompt("Enter new notes (or press Enter to keep current): ", allow_blank=True)
        self.engine.update_outcome(outcome.outcome_id, service, notes, doctor_id=self.user_id)
        self.manage_prescriptions(outcome.outcome_id)
        self.output(f"Outcome {outcome.outcome_id} updated.")

    def manage_prescriptions(self, outcome_id: str) -> None:
        while True:
            self.show_record(self.engine.get_outcome(outcome_id).appointment_id)
            choice = self.prompt(
                "Add (a), remove (r) prescription or finish (f)? ",
                lambda a: a.lower() in ("a", "r", "f"),
            ).lower()
            if choice == "f":
                return
            try:
                if choice == "a":
                    medication_id = self.prompt("Enter Medication ID: ")
                    quantity = self.ask_quantity("Enter quantity: ")
                    notes = self.ask("Enter notes (optional): ")
                    self.engine.add_prescription(
                        outcome_id, PrescriptionLine(medication_id, quantity, notes), doctor_id=self.user_id
                    )
                else:
                    prescription_id = self.prompt("Enter Prescription ID to remove: ")
                    self.engine.remove_prescription(outcome_id, prescription_id, doctor_id=self.user_id)
            except SchedulingError as e:
                self.output(f"Error: {e}")

    # -- Medical records ----------------------------------------------------

    def choose_patient(self) -> str:
        """List patients under this doctor's care and ask for one; blank means go back."""
        patients = self.engine.patients_under_care(self.user_id)
        if not patients:
            self.output("No patients under your care.")
            return ""
        for patient_id in patients:
            user = self.engine.stores.users.get(patient_id)
            self.output(f"{patient_id:<8} {user.name if user else ''}".rstrip())
        return self.prompt("Enter Patient ID (or press Enter to go back): ", allow_blank=True)

    def show_history(self, records) -> None:
        if not records:
            self.output("No medical history recorded.")
        for record in records:
            self.output(
                f"{record.history_id:<6} {format_date(record.diagnosis_date)}  "
                f"{record.diagnosis}: {record.treatment}"
            )

    def view_medical_records(self) -> None:
        self.header("PATIENT MEDICAL RECORDS")
        patient_id = self.choose_patient()
        if not patient_id:
            return
        self.show_history(self.engine.patient_medical_history(patient_id, doctor_id=self.user_id))

    def update_medical_records(self) -> None:
        self.header("UPDATE PATIENT MEDICAL RECORDS")
        patient_id = self.choose_patient()
        if not patient_id:
            return
        records = self.engine.patient_medical_history(patient_id, doctor_id=self.user_id)
        self.show_history(records)

        if not records:
            if not self.confirm("Would you like to add a new record?"):
                return
            history_id = "new"
        else:
            history_id = self.prompt(
                "Enter History ID to update, 'new' to add one (or press Enter to go back): ",
                allow_blank=True,
            )
        if not history_id:
            return

        if history_id.lower() == "new":
            diagnosis = self.prompt("Enter diagnosis: ")
            treatment = self.prompt("Enter treatment: ")
            record = self.engine.add_medical_history(
                patient_id, diagnosis, treatment, doctor_id=self.user_id
            )
            self.output(f"History {record.history_id} added.")
            return
        if history_id not in {r.history_id for r in records}:
            self.output(f"History {history_id} is not one of this patient's records.")
            return

        diagnosis = self.prompt("Enter new diagnosis (or press Enter to keep current): ", allow_blank=True)
        treatment = self.prompt("Enter new treatment (or press Enter to keep current): ", allow_blank=True)
        record = self.engine.update_medical_history(
            history_id, diagnosis, treatment, doctor_id=self.user_id
        )
        self.output(f"History {record.history_id} updated.")


# Pharmacist Menu
class PharmacistMenu(Menu):
    title = "PHARMACIST MENU"
    options = (
        ("View Pending Prescriptions", "view_pending"),
        ("Dispense Prescription", "dispense"),
    )

    def view_pending(self) -> None:
        self.header("PENDING PRESCRIPTIONS")
        pending = self.engine.pending_prescriptions()
        if not pending:
            self.output("No pending prescriptions.")
        for p in pending:
            stock = self.engine.stores.medications.get(p.medication_id)
            in_stock = stock.stock_level if stock else 0
            self.output(f"{p.prescription_id:<6} {p.appointment_id} {p.medication_id} x{p.quantity} (stock {in_stock})")

    def dispense(self) -> None:
        self.header("DISPENSE PRESCRIPTION")
        prescription_id = self.prompt("Enter Prescription ID (or press Enter to go back): ", allow_blank=True)
        if not prescription_id:
            return
        prescription = self.engine.dispense_prescription(prescription_id)
        self.output(f"Prescription {prescription.prescription_id} dispensed.")


# Administrator Menu
class AdministratorMenu(Menu):
    title = "ADMINISTRATOR MENU"
    options = (("View All Appointments", "view_appointments"),)

    def view_appointments(self) -> None:
        self.header("ALL APPOINTMENTS")
        status = self.prompt("Filter by status (or press Enter for all): ", self._check_status, allow_blank=True)
        appointments = self.engine.stores.appointments.filter(status=status or None)
        self.show_appointments(appointments)

    @staticmethod
    def _check_status(value: str) -> bool:
        return value.upper() in {s.value for s in AppointmentStatus}


MENUS = {
    Role.PATIENT: PatientMenu,
    Role.DOCTOR: DoctorMenu,
    Role.PHARMACIST: PharmacistMenu,
    Role.ADMINISTRATOR: AdministratorMenu,
}


def menu_for(role: Role):
    return MENUS[role]
