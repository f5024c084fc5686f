"""
Hospital Appointment Scheduling Engine

Slot booking, appointment lifecycle and outcome/prescription recording for
a console-driven hospital management system persisted in CSV files.
"""

__version__ = "1.0.0"
__author__ = "Hospital Systems Team"
