"""One appointment-booking session and the per-thread registry holding them."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, Protocol

from booking_workflow.coordinator import FetchCoordinator
from booking_workflow.exceptions import ApiError
from booking_workflow.gate import SubmissionGate
from booking_workflow.logging_config import get_logger
from booking_workflow.models import (
    AppointmentType,
    BookingDraft,
    Department,
    Doctor,
    GateStatus,
    Patient,
    SubmitOutcome,
)
from booking_workflow.selection import Command, SelectionGraph, SelectionState
from booking_workflow.slots import build_default_fetchers

logger = get_logger(__name__)

LOAD_ERROR_MESSAGE = "Error loading initial data"

ChangeListener = Callable[["BookingSession"], Awaitable[None]]


class HospitalApi(Protocol):
    async def list_patients(self) -> list[Patient]: ...

    async def list_departments(self) -> list[Department]: ...

    async def get_doctors_by_department(self, department_id: str) -> list[Doctor]: ...

    async def get_available_slots(self, doctor_id: str, day: date) -> list[str]: ...

    async def create_appointment(self, draft: BookingDraft) -> dict[str, Any]: ...


class Navigator(Protocol):
    def booking_complete(self, record: dict[str, Any]) -> None: ...

    def abandoned(self) -> None: ...


class LoggingNavigator:
    def booking_complete(self, record: dict[str, Any]) -> None:
        logger.info("navigate", event="booking_complete", appointment_id=record.get("id"))

    def abandoned(self) -> None:
        logger.info("navigate", event="abandoned")


class BookingSession:
    """Selection state, fetch coordinator and submission gate for one booking."""

    def __init__(
        self,
        api: HospitalApi,
        navigator: Navigator | None = None,
        today: Callable[[], date] = date.today,
        on_change: ChangeListener | None = None,
        graph: SelectionGraph | None = None,
    ) -> None:
        self.api = api
        self.navigator = navigator or LoggingNavigator()
        self.on_change = on_change
        self._today = today
        self._graph = graph or SelectionGraph()

        self.state = SelectionState()
        self.patients: list[Patient] = []
        self.departments: list[Department] = []
        self.loading = False

        self.coordinator = FetchCoordinator(self, build_default_fetchers(api))
        self.gate = SubmissionGate(self)

    @property
    def draft(self) -> BookingDraft:
        return self.state.draft

    @property
    def error(self) -> str:
        return self.state.error

    @property
    def today(self) -> date:
        return self._today()

    # ------------------------------------------------------------------ #
    #  Reference data
    # ------------------------------------------------------------------ #
    async def load_reference_data(self) -> bool:
        self.loading = True
        try:
            self.patients, self.departments = await asyncio.gather(
                self.api.list_patients(),
                self.api.list_departments(),
            )
        except ApiError as e:
            logger.warning("reference_data_failed", error=str(e))
            self.set_error(LOAD_ERROR_MESSAGE)
            return False
        finally:
            self.loading = False

        logger.info("reference_data_loaded", patients=len(self.patients), departments=len(self.departments))
        return True

    # ------------------------------------------------------------------ #
    #  Field setters
    # ------------------------------------------------------------------ #
    def set_patient(self, patient_id: str) -> SelectionState:
        return self._dispatch(Command.SET_PATIENT, patient_id)

    def set_appointment_type(self, appointment_type: AppointmentType | str) -> SelectionState:
        return self._dispatch(Command.SET_APPOINTMENT_TYPE, appointment_type)

    def set_notes(self, notes: str) -> SelectionState:
        return self._dispatch(Command.SET_NOTES, notes)

    def set_department(self, department_id: str) -> SelectionState:
        return self._dispatch(Command.SET_DEPARTMENT, department_id)

    def set_doctor(self, doctor_id: str) -> SelectionState:
        return self._dispatch(Command.SET_DOCTOR, doctor_id)

    def set_date(self, day: date | str) -> SelectionState:
        return self._dispatch(Command.SET_DATE, day)

    def set_time(self, slot: str) -> SelectionState:
        return self._dispatch(Command.SET_TIME, slot)

    def _dispatch(self, command: Command, value: Any) -> SelectionState:
        """Apply one transition.

        Transitions that start a fetch need a running event loop; without one
        ``RuntimeError`` is raised and the state is left as it was.
        """
        state, fetches = self._graph.apply(self.state, command, value, today=self.today)
        for request in fetches:
            self.coordinator.issue(request)
        self.state = state
        return state

    # ------------------------------------------------------------------ #
    #  Submission and navigation
    # ------------------------------------------------------------------ #
    async def submit(self) -> SubmitOutcome:
        return await self.gate.submit()

    @property
    def submitting(self) -> bool:
        return self.gate.status is GateStatus.SUBMITTING

    def complete(self, record: dict[str, Any]) -> None:
        self.reset()
        self.navigator.booking_complete(record)

    def cancel(self) -> None:
        self.reset()
        self.navigator.abandoned()

    def reset(self) -> None:
        self.state = SelectionState()
        self.coordinator.reset()

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #
    def set_error(self, message: str) -> None:
        self.state = self.state.model_copy(update={"error": message})

    async def settle(self) -> None:
        await self.coordinator.wait()

    async def notify(self) -> None:
        if self.on_change is not None:
            await self.on_change(self)

    def snapshot(self) -> dict[str, Any]:
        draft = self.state.draft
        return {
            "draft": draft.model_dump(by_alias=True, mode="json"),
            "patients": [{"id": patient.id, "name": patient.display_name} for patient in self.patients],
            "departments": [department.model_dump(by_alias=True) for department in self.departments],
            "doctors": [{"id": doctor.id, "name": doctor.display_name} for doctor in self.state.doctors],
            "slots": list(self.state.slots),
            "appointmentTypes": [{"value": kind.value, "label": kind.label} for kind in AppointmentType],
            "minDate": self.today.isoformat(),
            "doctorSelectable": bool(draft.department),
            "error": self.state.error or None,
            "loading": self.loading,
            "submitting": self.submitting,
        }


class SessionManager:
    """Keeps one BookingSession per thread id (thread-safe with an asyncio.Lock)."""

    def __init__(self, session_factory: Callable[[str], BookingSession]) -> None:
        self._session_factory = session_factory
        self._sessions: dict[str, BookingSession] = {}
        self._lock = asyncio.Lock()

    async def get(self, thread_id: str) -> BookingSession:
        async with self._lock:
            session = self._sessions.get(thread_id)
            if session is None:
                session = self._session_factory(thread_id)
                self._sessions[thread_id] = session
        return session

    async def drop(self, thread_id: str) -> None:
        async with self._lock:
            self._sessions.pop(thread_id, None)

    def __contains__(self, thread_id: str) -> bool:
        return thread_id in self._sessions
