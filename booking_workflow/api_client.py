from datetime import date
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar, cast

import httpx
from httpx import AsyncClient, Headers

from booking_workflow.api_urls import (
    APPOINTMENTS_URL,
    AVAILABLE_SLOTS_URL,
    DEPARTMENTS_URL,
    DOCTORS_URL,
    PATIENTS_URL,
)
from booking_workflow.exceptions import ApiError
from booking_workflow.logging_config import get_logger
from booking_workflow.models import BookingDraft, Department, Doctor, Patient

logger = get_logger(__name__)

R = TypeVar("R")
REASON_KEYS = ("message", "detail", "error")


def server_reason(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in REASON_KEYS:
            if isinstance(body.get(key), str) and body[key]:
                return cast(str, body[key])
    return None


def with_api_errors(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
    @wraps(func)
    async def wrapper(self: "HospitalApiClient", *args: Any, **kwargs: Any) -> R:
        try:
            return await func(self, *args, **kwargs)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning("api_status_error", call=func.__name__, status_code=status_code)
            raise ApiError(server_reason(e.response), status_code) from e
        except httpx.HTTPError as e:
            logger.warning("api_transport_error", call=func.__name__, error=str(e))
            raise ApiError() from e
        except ValueError as e:
            # undecodable JSON or a record that fails model validation
            logger.warning("api_malformed_response", call=func.__name__, error=str(e))
            raise ApiError("Unexpected response from hospital API") from e

    return wrapper


def unwrap_list(body: Any) -> list[Any]:
    if isinstance(body, dict):
        body = body.get("data", body.get("items", []))
    if not isinstance(body, list):
        raise ValueError(f"expected a list, got {type(body).__name__}")
    return body


def booking_record(response: httpx.Response, draft: BookingDraft) -> dict[str, Any]:
    """The created appointment, or the submitted payload when the body carries no record."""
    if response.content:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            return body
    return draft.to_payload()


class HospitalApiClient:
    """Async client for the hospital administration REST API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    @property
    def headers(self) -> Headers:
        headers = Headers({"accept": "application/json"})
        if self.token:
            headers["authorization"] = "Bearer " + self.token
        return headers

    def _client(self) -> AsyncClient:
        return AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _get_list(self, url: str, params: dict[str, str] | None = None) -> list[Any]:
        async with self._client() as client:
            response = await client.get(url, params=params)
            response.raise_for_status()

        return unwrap_list(response.json())

    @with_api_errors
    async def list_patients(self) -> list[Patient]:
        items = await self._get_list(PATIENTS_URL)
        return [Patient.model_validate(item) for item in items]

    @with_api_errors
    async def list_departments(self) -> list[Department]:
        items = await self._get_list(DEPARTMENTS_URL)
        return [Department.model_validate(item) for item in items]

    @with_api_errors
    async def get_doctors_by_department(self, department_id: str) -> list[Doctor]:
        items = await self._get_list(DOCTORS_URL, params={"department": department_id})
        return [Doctor.model_validate(item) for item in items]

    @with_api_errors
    async def get_available_slots(self, doctor_id: str, day: date) -> list[str]:
        items = await self._get_list(
            AVAILABLE_SLOTS_URL,
            params={"doctorId": doctor_id, "date": day.strftime("%Y-%m-%d")},
        )
        return [str(slot) for slot in items]

    @with_api_errors
    async def _post_appointment(self, draft: BookingDraft) -> httpx.Response:
        async with self._client() as client:
            response = await client.post(APPOINTMENTS_URL, json=draft.to_payload())
            response.raise_for_status()
        return response

    async def create_appointment(self, draft: BookingDraft) -> dict[str, Any]:
        # a 2xx status means the booking exists; the body is informational only
        response = await self._post_appointment(draft)
        logger.info("appointment_created", doctor_id=draft.doctor_id, date=str(draft.appointment_date))
        return booking_record(response, draft)
