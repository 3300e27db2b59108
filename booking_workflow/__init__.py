"""Appointment-booking workflow for the hospital administration client."""

from booking_workflow.models import AppointmentType, BookingDraft, SubmitOutcome
from booking_workflow.session import BookingSession

__all__ = ["AppointmentType", "BookingDraft", "BookingSession", "SubmitOutcome"]
