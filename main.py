"""Main entry point for the seat booking service."""

from seat_booking_service.config import get_settings
from seat_booking_service.main import app


def main():
    """Main function for CLI entry point."""
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
