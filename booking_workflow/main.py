import uvicorn

from booking_workflow.config import get_settings
from booking_workflow.logging_config import setup_logging


def main():
    """Run the FastAPI application with uvicorn server."""
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run("booking_workflow.app:app", host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
