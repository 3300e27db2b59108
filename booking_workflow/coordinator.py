"""Dependent-query coordination for a booking session.

Every query is tagged with the selection key it was issued for and a
per-kind generation number. A response is applied only when it belongs to
the latest query of its kind, has not been applied before, and its tag still
matches the session's current selection. Superseded queries are never
cancelled on the wire; their results are dropped on arrival.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from booking_workflow.exceptions import ApiError
from booking_workflow.logging_config import get_logger
from booking_workflow.models import Doctor, FetchKind, FetchRequest
from booking_workflow.slots import Fetcher, selection_key, slot_for

if TYPE_CHECKING:
    from booking_workflow.session import BookingSession

logger = get_logger(__name__)

FETCH_ERROR_MESSAGES = {
    FetchKind.DOCTORS: "Error loading doctors",
    FetchKind.SLOTS: "Error loading available slots",
}


class FetchCoordinator:
    def __init__(self, session: BookingSession, fetchers: dict[FetchKind, Fetcher]) -> None:
        self._session = session
        self._fetchers = fetchers
        self._issued: dict[FetchKind, int] = {kind: 0 for kind in FetchKind}
        self._applied: dict[FetchKind, int] = {kind: 0 for kind in FetchKind}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def issue(self, request: FetchRequest) -> asyncio.Task[None]:
        """Start ``request`` in the background, superseding older ones of its kind."""
        loop = asyncio.get_running_loop()
        self._issued[request.kind] += 1
        tagged = request.model_copy(update={"generation": self._issued[request.kind]})
        logger.debug("fetch_issued", kind=tagged.kind.value, token=tagged.token, generation=tagged.generation)

        task = loop.create_task(self._run(tagged))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait(self) -> None:
        """Wait until every query issued so far has settled."""
        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*pending)

    def reset(self) -> None:
        # nothing issued before a reset may apply after it
        for kind in FetchKind:
            self._issued[kind] += 1

    def is_current(self, request: FetchRequest) -> bool:
        kind = request.kind
        if request.generation != self._issued[kind]:
            return False
        if request.generation <= self._applied[kind]:
            return False
        return request.token == selection_key(self._session.state.draft, kind)

    def deliver(self, request: FetchRequest, items: list[Any]) -> bool:
        """Apply a response if it is still current; return whether it was applied."""
        if not self.is_current(request):
            logger.debug("fetch_discarded", kind=request.kind.value, token=request.token, generation=request.generation)
            return False

        self._applied[request.kind] = request.generation
        options = slot_for(request.kind).options
        if request.kind is FetchKind.DOCTORS:
            items = [Doctor.model_validate(item) for item in items]
        else:
            items = [str(item) for item in items]
        self._session.state = self._session.state.model_copy(update={options: items})
        logger.debug("fetch_applied", kind=request.kind.value, token=request.token, count=len(items))
        return True

    def fail(self, request: FetchRequest, error: ApiError) -> bool:
        """Surface a failed query if it is still current; the list stays empty."""
        if not self.is_current(request):
            logger.debug("fetch_failure_discarded", kind=request.kind.value, token=request.token)
            return False

        self._applied[request.kind] = request.generation
        logger.warning("fetch_failed", kind=request.kind.value, token=request.token, error=str(error))
        self._session.set_error(FETCH_ERROR_MESSAGES[request.kind])
        return True

    async def _run(self, request: FetchRequest) -> None:
        try:
            items = await self._fetchers[request.kind](request.token)
        except ApiError as e:
            changed = self.fail(request, e)
        else:
            changed = self.deliver(request, items)

        if changed:
            await self._session.notify()
