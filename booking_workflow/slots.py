"""Dependent slot chain for the booking draft.

Each slot knows
    • the draft field it fills
    • which earlier slots it depends on
    • which fetched option list constrains it, if any
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeAlias

from booking_workflow.models import BookingDraft, FetchKind

Fetcher: TypeAlias = Callable[[tuple[str, ...]], Awaitable[list[Any]]]


@dataclass(frozen=True, slots=True)
class Slot:
    name: str
    dependencies: Sequence[str]
    fetch: FetchKind | None = None
    options: str | None = None  # attribute of SelectionState holding the fetched list

    @property
    def empty(self) -> Any:
        return BookingDraft.model_fields[self.name].default


# --------------------------------------------------------------------------- #
#  Default chain: department → doctor, (doctor, date) → time
# --------------------------------------------------------------------------- #
SLOT_CHAIN: list[Slot] = [
    Slot("department", []),
    Slot("doctor_id", ["department"], FetchKind.DOCTORS, "doctors"),
    Slot("appointment_date", []),
    Slot("appointment_time", ["doctor_id", "appointment_date"], FetchKind.SLOTS, "slots"),
]


def direct_dependents(name: str) -> list[Slot]:
    return [slot for slot in SLOT_CHAIN if name in slot.dependencies]


def dependents_of(name: str) -> list[Slot]:
    """Every slot invalidated, directly or transitively, when ``name`` changes."""
    found: list[Slot] = []
    pending = [name]
    while pending:
        current = pending.pop()
        for slot in direct_dependents(current):
            if slot not in found:
                found.append(slot)
                pending.append(slot.name)
    return found


def slot_for(kind: FetchKind) -> Slot:
    return next(slot for slot in SLOT_CHAIN if slot.fetch is kind)


def selection_key(draft: BookingDraft, kind: FetchKind) -> tuple[str, ...]:
    """The tag a query of ``kind`` would carry for the current draft."""
    slot = slot_for(kind)
    return tuple(_as_text(getattr(draft, dep)) for dep in slot.dependencies)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def build_default_fetchers(api) -> dict[FetchKind, Fetcher]:
    """Bind each fetch kind of the chain to the API call that serves it."""

    async def doctor_options(token: tuple[str, ...]) -> list[Any]:
        (department,) = token
        return await api.get_doctors_by_department(department)

    async def timeslot_options(token: tuple[str, ...]) -> list[Any]:
        doctor_id, day = token
        return await api.get_available_slots(doctor_id, date.fromisoformat(day))

    return {
        FetchKind.DOCTORS: doctor_options,
        FetchKind.SLOTS: timeslot_options,
    }
