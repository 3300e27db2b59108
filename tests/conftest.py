"""Shared test fixtures."""
import asyncio
from datetime import date
from typing import Any

import pytest

from booking_workflow.exceptions import ApiError
from booking_workflow.models import BookingDraft, Department, Doctor, Patient
from booking_workflow.session import BookingSession

TODAY = date(2025, 5, 20)
BOOKING_DAY = date(2025, 6, 1)


class GatedApi:
    """Hospital API double whose responses can be held back and released in any order."""

    def __init__(self) -> None:
        self.doctors = {
            "cardiology": [Doctor(id="d1", first_name="Ana", last_name="Perez")],
            "neurology": [Doctor(id="d3", first_name="Elena", last_name="Ruiz")],
        }
        self.slots = {
            ("d1", BOOKING_DAY.isoformat()): ["09:00", "09:30"],
            ("d3", BOOKING_DAY.isoformat()): ["14:00"],
        }
        self.doctor_calls: list[str] = []
        self.slot_calls: list[tuple[str, str]] = []
        self.created: list[dict[str, Any]] = []
        self.fail_doctors: set[str] = set()
        self.fail_slots: set[tuple[str, str]] = set()
        self.fail_reference_data = False
        self.create_error: ApiError | None = None
        self.create_gate: asyncio.Event | None = None
        self._gates: dict[tuple[str, ...], asyncio.Event] = {}

    def hold(self, *key: str) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[key] = event
        return event

    async def _pass(self, *key: str) -> None:
        event = self._gates.get(key)
        if event is not None:
            await event.wait()

    async def list_patients(self) -> list[Patient]:
        if self.fail_reference_data:
            raise ApiError("down", 503)
        return [Patient(id="p1", first_name="Maria", last_name="Garcia")]

    async def list_departments(self) -> list[Department]:
        return [Department(id="cardiology", name="Cardiology"), Department(id="neurology", name="Neurology")]

    async def get_doctors_by_department(self, department_id: str) -> list[Doctor]:
        self.doctor_calls.append(department_id)
        await self._pass("doctors", department_id)
        if department_id in self.fail_doctors:
            raise ApiError("boom", 500)
        return list(self.doctors.get(department_id, []))

    async def get_available_slots(self, doctor_id: str, day: date) -> list[str]:
        key = (doctor_id, day.isoformat())
        self.slot_calls.append(key)
        await self._pass("slots", *key)
        if key in self.fail_slots:
            raise ApiError("boom", 500)
        return list(self.slots.get(key, []))

    async def create_appointment(self, draft: BookingDraft) -> dict[str, Any]:
        payload = draft.to_payload()
        self.created.append(payload)
        if self.create_gate is not None:
            await self.create_gate.wait()
        if self.create_error is not None:
            raise self.create_error
        return {"id": f"a{len(self.created)}", **payload}


class RecordingNavigator:
    def __init__(self) -> None:
        self.completed: list[dict[str, Any]] = []
        self.abandoned_count = 0

    def booking_complete(self, record: dict[str, Any]) -> None:
        self.completed.append(record)

    def abandoned(self) -> None:
        self.abandoned_count += 1


async def run_until(predicate, attempts: int = 50) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


async def fill_draft(session: BookingSession) -> None:
    """Walk the session through a complete, valid selection."""
    session.set_department("cardiology")
    await session.settle()
    session.set_doctor("d1")
    session.set_date(BOOKING_DAY)
    await session.settle()
    session.set_time("09:00")
    session.set_patient("p1")
    session.set_appointment_type("consultation")


@pytest.fixture
def api():
    return GatedApi()


@pytest.fixture
def navigator():
    return RecordingNavigator()


@pytest.fixture
def session(api, navigator):
    """A fresh booking session pinned to a fixed calendar day."""
    return BookingSession(api, navigator=navigator, today=lambda: TODAY)
