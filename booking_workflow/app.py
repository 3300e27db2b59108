"""FastAPI WebSocket shell around the appointment-booking workflow.

Each conversation is identified by a ``thread_id`` and owns one
``BookingSession``. Every client message is answered with a state snapshot;
doctor and slot lists that arrive later are pushed as ``update`` messages, and
navigation signals (booking complete, abandoned) as ``navigate`` messages.
"""

import json
from collections.abc import Callable
from typing import Any, Dict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from booking_workflow.api_client import HospitalApiClient
from booking_workflow.config import Settings, get_settings
from booking_workflow.logging_config import get_logger
from booking_workflow.mock_client import MockApiClient
from booking_workflow.session import BookingSession, HospitalApi, SessionManager

logger = get_logger(__name__)

# Define thread ID type alias
ThreadId = str

SETTERS: Dict[str, Callable[[BookingSession, Any], Any]] = {
    "set_patient": BookingSession.set_patient,
    "set_department": BookingSession.set_department,
    "set_doctor": BookingSession.set_doctor,
    "set_date": BookingSession.set_date,
    "set_time": BookingSession.set_time,
    "set_appointment_type": BookingSession.set_appointment_type,
    "set_notes": BookingSession.set_notes,
}


class RecordingNavigator:
    """Collects navigation signals so the socket handler can forward them."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    def booking_complete(self, record: dict[str, Any]) -> None:
        self.events.append({"event": "booking_complete", "appointment": record})

    def abandoned(self) -> None:
        self.events.append({"event": "abandoned"})

    def drain(self) -> list[dict[str, Any]]:
        events, self.events = self.events, []
        return events


def default_api_factory(settings: Settings) -> Callable[[], HospitalApi]:
    if settings.api.use_mock:
        return MockApiClient

    def factory() -> HospitalApi:
        return HospitalApiClient(settings.api.base_url, settings.api.token, settings.api.timeout)

    return factory


def create_app(api_factory: Callable[[], HospitalApi] | None = None) -> FastAPI:
    if api_factory is None:
        api_factory = default_api_factory(get_settings())

    app = FastAPI(title="Hospital Appointment Booking")
    api = api_factory()

    # Store active connections
    active_connections: Dict[ThreadId, WebSocket] = {}

    async def push_update(thread_id: ThreadId, session: BookingSession) -> None:
        websocket = active_connections.get(thread_id)
        if websocket is None:
            return
        try:
            await websocket.send_json({"type": "update", "thread_id": thread_id, "state": session.snapshot()})
        except (WebSocketDisconnect, RuntimeError):
            logger.info("update_dropped", thread_id=thread_id)
            active_connections.pop(thread_id, None)

    def build_session(thread_id: ThreadId) -> BookingSession:
        async def on_change(session: BookingSession) -> None:
            await push_update(thread_id, session)

        return BookingSession(api, navigator=RecordingNavigator(), on_change=on_change)

    sessions = SessionManager(build_session)
    app.state.sessions = sessions

    async def handle(thread_id: ThreadId, action: str, value: Any) -> list[dict[str, Any]]:
        session = await sessions.get(thread_id)

        if action == "load":
            await session.load_reference_data()
        elif action in SETTERS:
            SETTERS[action](session, value)
        elif action == "submit":
            outcome = await session.submit()
            logger.info("submit_handled", thread_id=thread_id, outcome=outcome.name)
        elif action == "cancel":
            session.cancel()
        else:
            return [{"error": f"Unknown action: {action}"}]

        replies = [{"type": "state", "thread_id": thread_id, "state": session.snapshot()}]
        navigator = session.navigator
        if isinstance(navigator, RecordingNavigator):
            events = navigator.drain()
            for event in events:
                replies.append({"type": "navigate", "thread_id": thread_id, **event})
            if events:
                await sessions.drop(thread_id)
        return replies

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        """WebSocket endpoint driving one booking session per thread_id.

        Messages are JSON objects ``{"thread_id", "action", "value"}``.
        """
        await websocket.accept()

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message_data = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({"error": "Message must be a JSON object"})
                    continue

                if not isinstance(message_data, dict):
                    await websocket.send_json({"error": "Message must be a JSON object"})
                    continue

                thread_id = message_data.get("thread_id")
                action = message_data.get("action")
                if not thread_id or not action:
                    await websocket.send_json(
                        {"error": "Missing required fields: thread_id and action are required"}
                    )
                    continue

                active_connections[thread_id] = websocket

                for reply in await handle(thread_id, action, message_data.get("value")):
                    await websocket.send_json(reply)

        except WebSocketDisconnect:
            for thread_id, conn in list(active_connections.items()):
                if conn == websocket:
                    active_connections.pop(thread_id)
                    await sessions.drop(thread_id)
                    logger.info("session_dropped", thread_id=thread_id, reason="disconnect")

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"message": "Hospital appointment booking. Connect to /ws for WebSocket communication."}

    return app


app = create_app()
