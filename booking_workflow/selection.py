from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from langgraph.graph import END, StateGraph
from pydantic import BaseModel, Field

from booking_workflow.logging_config import get_logger
from booking_workflow.models import AppointmentType, BookingDraft, Doctor, FetchRequest
from booking_workflow.slots import dependents_of, direct_dependents, selection_key

logger = get_logger(__name__)

INVALID_DATE_MESSAGE = "Invalid appointment date"
PAST_DATE_MESSAGE = "Appointment date cannot be in the past"
INVALID_TYPE_MESSAGE = "Invalid appointment type"


class Command(str, Enum):
    SET_PATIENT = "set_patient"
    SET_APPOINTMENT_TYPE = "set_appointment_type"
    SET_NOTES = "set_notes"
    SET_DEPARTMENT = "set_department"
    SET_DOCTOR = "set_doctor"
    SET_DATE = "set_date"
    SET_TIME = "set_time"


class SelectionState(BaseModel):
    """The draft plus the option lists fetched for its current selection."""

    draft: BookingDraft = Field(default_factory=BookingDraft)
    doctors: list[Doctor] = Field(default_factory=list)
    slots: list[str] = Field(default_factory=list)
    error: str = ""

    # ─ per-command fields, cleared once a transition has run ─
    command: Command | None = None
    value: Any = None
    today: date | None = None
    fetches: list[FetchRequest] = Field(default_factory=list)


class SelectionGraph:
    """Runs every field setter as a LangGraph transition.

    A transition never performs I/O; the queries it wants issued come back
    as ``FetchRequest`` values next to the new state.
    """

    def __init__(self) -> None:
        self.graph = self._build_graph()
        self.executor = self.graph.compile()

    # --------------------------------------------------------------------- #
    #  LangGraph construction
    # --------------------------------------------------------------------- #
    def _build_graph(self) -> StateGraph:
        g = StateGraph(SelectionState)

        g.add_node("receive", _receive)
        g.add_node(Command.SET_PATIENT.value, _set_patient)
        g.add_node(Command.SET_APPOINTMENT_TYPE.value, _set_appointment_type)
        g.add_node(Command.SET_NOTES.value, _set_notes)
        g.add_node(Command.SET_DEPARTMENT.value, _set_department)
        g.add_node(Command.SET_DOCTOR.value, _set_doctor)
        g.add_node(Command.SET_DATE.value, _set_date)
        g.add_node(Command.SET_TIME.value, _set_time)

        g.set_entry_point("receive")
        g.add_conditional_edges(
            "receive",
            _route_command,
            {command.value: command.value for command in Command},
        )
        for command in Command:
            g.add_edge(command.value, END)
        return g

    def apply(
        self, state: SelectionState, command: Command | str, value: Any, today: date
    ) -> tuple[SelectionState, list[FetchRequest]]:
        pending = state.model_copy(
            deep=True,
            update={"command": Command(command), "value": value, "today": today, "fetches": []},
        )
        result = self.executor.invoke(pending)
        new_state = result if isinstance(result, SelectionState) else SelectionState.model_validate(result)

        fetches = list(new_state.fetches)
        settled = new_state.model_copy(update={"command": None, "value": None, "today": None, "fetches": []})
        return settled, fetches


# ------------------------------------------------------------------ #
#  Transition nodes
# ------------------------------------------------------------------ #
def _receive(state: SelectionState) -> SelectionState:
    state.fetches = []
    return state


def _route_command(state: SelectionState) -> str:
    return Command(state.command).value


def _set_patient(state: SelectionState) -> SelectionState:
    state.draft = state.draft.model_copy(update={"patient_id": _text(state.value)})
    return state


def _set_notes(state: SelectionState) -> SelectionState:
    state.draft = state.draft.model_copy(update={"notes": _text(state.value)})
    return state


def _set_appointment_type(state: SelectionState) -> SelectionState:
    appointment_type: AppointmentType | None = None
    if state.value not in (None, ""):
        try:
            appointment_type = AppointmentType(state.value)
        except ValueError:
            logger.info("appointment_type_rejected", value=state.value)
            state.error = INVALID_TYPE_MESSAGE
            return state

    state.draft = state.draft.model_copy(update={"appointment_type": appointment_type})
    return state


def _set_department(state: SelectionState) -> SelectionState:
    department = _text(state.value)
    # same department again: keep the current lists, no re-fetch
    if department == state.draft.department:
        return state
    return _change(state, "department", department)


def _set_doctor(state: SelectionState) -> SelectionState:
    doctor_id = _text(state.value)
    if not state.draft.department:
        logger.info("doctor_rejected", doctor_id=doctor_id, reason="no department selected")
        return state
    if doctor_id == state.draft.doctor_id:
        return state
    if doctor_id and doctor_id not in {doctor.id for doctor in state.doctors}:
        logger.info("doctor_rejected", doctor_id=doctor_id, reason="not in doctor list")
        return state
    return _change(state, "doctor_id", doctor_id)


def _set_date(state: SelectionState) -> SelectionState:
    day: date | None = None
    if state.value not in (None, ""):
        day = _parse_date(state.value)
        if day is None:
            state.error = INVALID_DATE_MESSAGE
            return state
        if state.today is not None and day < state.today:
            logger.info("date_rejected", date=day.isoformat(), today=state.today.isoformat())
            state.error = PAST_DATE_MESSAGE
            return state

    if day == state.draft.appointment_date:
        return state
    return _change(state, "appointment_date", day)


def _set_time(state: SelectionState) -> SelectionState:
    slot = _text(state.value)
    if slot and slot not in state.slots:
        logger.info("time_rejected", slot=slot)
        return state
    state.draft = state.draft.model_copy(update={"appointment_time": slot})
    return state


# ------------------------------------------------------------------ #
#  Helper utilities
# ------------------------------------------------------------------ #
def _change(state: SelectionState, field: str, value: Any) -> SelectionState:
    """Set ``field``, reset everything downstream of it, request new options."""
    updates: dict[str, Any] = {field: value}
    for slot in dependents_of(field):
        updates[slot.name] = slot.empty
        if slot.options:
            setattr(state, slot.options, [])
    state.draft = state.draft.model_copy(update=updates)

    for slot in direct_dependents(field):
        if slot.fetch is None:
            continue
        if all(getattr(state.draft, dep) for dep in slot.dependencies):
            request = FetchRequest(kind=slot.fetch, token=selection_key(state.draft, slot.fetch))
            state.fetches = [*state.fetches, request]
    return state


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None
