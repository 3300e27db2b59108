class BookingError(Exception):
    pass


class ApiError(BookingError):
    """A remote hospital API call failed.

    ``reason`` is the server-provided message when there is one.
    """

    def __init__(self, reason: str | None = None, status_code: int | None = None) -> None:
        super().__init__(reason or "Hospital API request failed")
        self.reason = reason
        self.status_code = status_code
