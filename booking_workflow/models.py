"""Value types shared by the booking workflow.

Wire names are camelCase (``patientId``), Python attributes snake_case.
"""

from __future__ import annotations

from datetime import date
from enum import Enum, auto
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    coerce_numbers_to_str=True,
)


class AppointmentType(str, Enum):
    CONSULTATION = "consultation"
    FOLLOWUP = "followup"
    CHECKUP = "checkup"
    EMERGENCY = "emergency"

    @property
    def label(self) -> str:
        return APPOINTMENT_TYPE_LABELS[self]


APPOINTMENT_TYPE_LABELS = {
    AppointmentType.CONSULTATION: "Consultation",
    AppointmentType.FOLLOWUP: "Follow-up",
    AppointmentType.CHECKUP: "General Checkup",
    AppointmentType.EMERGENCY: "Emergency",
}


class Patient(BaseModel):
    model_config = WIRE_CONFIG

    id: str = Field(validation_alias=AliasChoices("id", "patientId"))
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Department(BaseModel):
    model_config = WIRE_CONFIG

    id: str
    name: str


class Doctor(BaseModel):
    model_config = WIRE_CONFIG

    id: str = Field(validation_alias=AliasChoices("id", "doctorId"))
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name}".strip()


class BookingDraft(BaseModel):
    """The appointment record under construction.

    Empty strings (and ``None`` for the type and date) mean "not chosen yet".
    """

    model_config = WIRE_CONFIG

    patient_id: str = ""
    department: str = ""
    doctor_id: str = ""
    appointment_type: AppointmentType | None = None
    appointment_date: date | None = None
    appointment_time: str = ""
    notes: str = ""

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        if not self.notes:
            payload.pop("notes", None)
        return payload


class FetchKind(str, Enum):
    DOCTORS = "doctors"
    SLOTS = "slots"


class FetchRequest(BaseModel):
    """A dependent query tagged with the selection key it was issued for."""

    kind: FetchKind
    token: tuple[str, ...]
    generation: int = 0


class GateStatus(Enum):
    IDLE = auto()
    SUBMITTING = auto()
    SUCCESS = auto()


class SubmitOutcome(Enum):
    BOOKED = auto()
    INVALID = auto()
    FAILED = auto()
    REJECTED = auto()
