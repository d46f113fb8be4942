#!/usr/bin/env python3
"""Development scripts for the seat booking service."""

import subprocess
import sys


def start():
    """Start the development server."""
    subprocess.run([
        "uvicorn",
        "seat_booking_service.main:app",
        "--host", "0.0.0.0",
        "--port", "3000",
        "--reload"
    ])


def migrate():
    """Apply database migrations."""
    subprocess.run(["alembic", "upgrade", "head"])


def test():
    """Run the test suite."""
    subprocess.run(["pytest", "tests/"])


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python scripts.py <command>")
        print("Commands: start, migrate, test")
        sys.exit(1)

    command = sys.argv[1].replace("-", "_")
    if command in {"start", "migrate", "test"}:
        getattr(sys.modules[__name__], command)()
    else:
        print(f"Unknown command: {sys.argv[1]}")
        sys.exit(1)
