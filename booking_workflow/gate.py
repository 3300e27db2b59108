from __future__ import annotations

from typing import TYPE_CHECKING

from booking_workflow.exceptions import ApiError
from booking_workflow.logging_config import get_logger
from booking_workflow.models import BookingDraft, GateStatus, SubmitOutcome
from booking_workflow.selection import PAST_DATE_MESSAGE

if TYPE_CHECKING:
    from booking_workflow.session import BookingSession

logger = get_logger(__name__)

REQUIRED_FIELDS = ("patient_id", "doctor_id", "appointment_date", "appointment_time")
REQUIRED_FIELDS_MESSAGE = "Please fill all required fields"
BOOKING_FAILED_MESSAGE = "Error booking appointment"


def missing_fields(draft: BookingDraft) -> list[str]:
    return [name for name in REQUIRED_FIELDS if not getattr(draft, name)]


class SubmissionGate:
    """Validates the draft and lets at most one booking request through at a time.

    ``IDLE → SUBMITTING → SUCCESS``; a failed request drops back to ``IDLE``
    with the draft untouched so it can be corrected and resubmitted.
    """

    def __init__(self, session: BookingSession) -> None:
        self._session = session
        self.status = GateStatus.IDLE

    @property
    def is_open(self) -> bool:
        return self.status is GateStatus.IDLE

    async def submit(self) -> SubmitOutcome:
        if not self.is_open:
            logger.info("submit_rejected", status=self.status.name)
            return SubmitOutcome.REJECTED

        session = self._session
        session.set_error("")

        draft = session.state.draft
        missing = missing_fields(draft)
        if missing:
            logger.info("submit_invalid", missing=missing)
            session.set_error(REQUIRED_FIELDS_MESSAGE)
            return SubmitOutcome.INVALID

        # the calendar may have moved on since the date was picked
        if draft.appointment_date < session.today:
            logger.info("submit_invalid", appointment_date=str(draft.appointment_date))
            session.set_error(PAST_DATE_MESSAGE)
            return SubmitOutcome.INVALID

        self.status = GateStatus.SUBMITTING
        try:
            record = await session.api.create_appointment(draft)
        except ApiError as e:
            self.status = GateStatus.IDLE
            logger.warning("submit_failed", reason=e.reason, status_code=e.status_code)
            session.set_error(e.reason or BOOKING_FAILED_MESSAGE)
            return SubmitOutcome.FAILED

        self.status = GateStatus.SUCCESS
        session.complete(record)
        logger.info("submit_succeeded", appointment_id=record.get("id"))
        return SubmitOutcome.BOOKED
