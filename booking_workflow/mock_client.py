from datetime import date, time
from itertools import count
from typing import Any

from booking_workflow.exceptions import ApiError
from booking_workflow.models import BookingDraft, Department, Doctor, Patient

MORNING = (time(9, 0), time(12, 0))
AFTERNOON = (time(13, 0), time(16, 0))
SLOT_MINUTES = 30


def slot_grid() -> list[str]:
    labels = []
    for start, end in (MORNING, AFTERNOON):
        minutes = start.hour * 60 + start.minute
        while minutes < end.hour * 60 + end.minute:
            labels.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
            minutes += SLOT_MINUTES
    return labels


class MockApiClient:
    """In-memory hospital API used for local runs and tests."""

    def __init__(self) -> None:
        self.patients = [
            Patient(id="p1", first_name="Maria", last_name="Garcia"),
            Patient(id="p2", first_name="John", last_name="Smith"),
        ]
        self.departments = [
            Department(id="cardiology", name="Cardiology"),
            Department(id="neurology", name="Neurology"),
            Department(id="pediatrics", name="Pediatrics"),
        ]
        self.doctors = {
            "cardiology": [
                Doctor(id="d1", first_name="Ana", last_name="Perez"),
                Doctor(id="d2", first_name="Luis", last_name="Lopez"),
            ],
            "neurology": [Doctor(id="d3", first_name="Elena", last_name="Ruiz")],
            "pediatrics": [Doctor(id="d4", first_name="Pablo", last_name="Ortega")],
        }
        self.appointments: list[dict[str, Any]] = []
        self._ids = count(1)

    async def list_patients(self) -> list[Patient]:
        """Return every registered patient."""
        return list(self.patients)

    async def list_departments(self) -> list[Department]:
        """Return the hospital departments."""
        return list(self.departments)

    async def get_doctors_by_department(self, department_id: str) -> list[Doctor]:
        """Return doctors working in the department."""
        return list(self.doctors.get(department_id, []))

    async def get_available_slots(self, doctor_id: str, day: date) -> list[str]:
        """Return free half-hour slots; weekends have none."""
        if day.weekday() >= 5:
            return []
        taken = {
            item["appointmentTime"]
            for item in self.appointments
            if item["doctorId"] == doctor_id and item["appointmentDate"] == day.isoformat()
        }
        return [label for label in slot_grid() if label not in taken]

    async def create_appointment(self, draft: BookingDraft) -> dict[str, Any]:
        """Book the slot, failing if another booking already holds it."""
        if draft.appointment_date is None:
            raise ApiError("appointmentDate is required", 422)
        free = await self.get_available_slots(draft.doctor_id, draft.appointment_date)
        if draft.appointment_time not in free:
            raise ApiError("Selected time slot is no longer available", 409)

        record = {"id": f"a{next(self._ids)}", "status": "scheduled", **draft.to_payload()}
        self.appointments.append(record)
        return record
