import pytest

from booking_workflow.models import SubmitOutcome
from booking_workflow.session import LOAD_ERROR_MESSAGE
from conftest import TODAY, run_until


@pytest.mark.asyncio
async def test_happy_path_end_to_end(api, session, navigator):
    """Test the complete flow: department → doctor → date → slot → patient → type → submit."""
    session.set_department("cardiology")
    await session.settle()
    assert [doctor.id for doctor in session.state.doctors] == ["d1"]

    session.set_doctor("d1")
    session.set_date("2025-06-01")
    await session.settle()
    assert session.state.slots == ["09:00", "09:30"]

    session.set_time("09:00")
    session.set_patient("p1")
    session.set_appointment_type("consultation")

    outcome = await session.submit()

    assert outcome is SubmitOutcome.BOOKED
    assert api.created == [
        {
            "patientId": "p1",
            "doctorId": "d1",
            "appointmentDate": "2025-06-01",
            "appointmentTime": "09:00",
            "appointmentType": "consultation",
            "department": "cardiology",
        }
    ]
    assert len(navigator.completed) == 1


@pytest.mark.asyncio
async def test_switching_department_before_first_fetch_resolves(api, session):
    cardiology = api.hold("doctors", "cardiology")
    neurology = api.hold("doctors", "neurology")

    session.set_department("cardiology")
    session.set_department("neurology")

    cardiology.set()
    await run_until(lambda: session.coordinator.in_flight == 1)
    assert session.state.doctors == []

    neurology.set()
    await session.settle()
    assert [doctor.id for doctor in session.state.doctors] == ["d3"]


@pytest.mark.asyncio
async def test_notes_are_sent_with_the_booking(api, session):
    session.set_department("cardiology")
    await session.settle()
    session.set_doctor("d1")
    session.set_date("2025-06-01")
    await session.settle()
    session.set_time("09:30")
    session.set_patient("p1")
    session.set_notes("Follow-up on ECG results")

    await session.submit()

    assert api.created[0]["notes"] == "Follow-up on ECG results"
    assert "appointmentType" not in api.created[0]


@pytest.mark.asyncio
async def test_load_reference_data(session):
    assert await session.load_reference_data() is True

    assert [patient.display_name for patient in session.patients] == ["Maria Garcia"]
    assert [department.id for department in session.departments] == ["cardiology", "neurology"]
    assert session.loading is False


@pytest.mark.asyncio
async def test_load_failure_leaves_workflow_usable(api, session):
    api.fail_reference_data = True

    assert await session.load_reference_data() is False
    assert session.error == LOAD_ERROR_MESSAGE
    assert session.patients == []

    session.set_department("cardiology")
    await session.settle()
    assert [doctor.id for doctor in session.state.doctors] == ["d1"]


@pytest.mark.asyncio
async def test_most_recent_error_wins(api, session):
    session.set_date("2020-01-01")
    assert session.error == "Appointment date cannot be in the past"

    api.fail_doctors.add("cardiology")
    session.set_department("cardiology")
    await session.settle()
    assert session.error == "Error loading doctors"


def test_snapshot_describes_the_form(session):
    snapshot = session.snapshot()

    assert snapshot["draft"]["patientId"] == ""
    assert snapshot["doctorSelectable"] is False
    assert snapshot["minDate"] == TODAY.isoformat()
    assert [item["label"] for item in snapshot["appointmentTypes"]] == [
        "Consultation",
        "Follow-up",
        "General Checkup",
        "Emergency",
    ]
    assert snapshot["error"] is None
    assert snapshot["submitting"] is False


def test_fetching_setter_outside_event_loop_leaves_state_untouched(api, session):
    session.set_patient("p1")

    with pytest.raises(RuntimeError):
        session.set_department("cardiology")

    assert session.draft.patient_id == "p1"
    assert session.draft.department == ""
    assert session.coordinator.in_flight == 0
    assert api.doctor_calls == []
