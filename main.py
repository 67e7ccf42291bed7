"""Service Entry Point - Root Module.

Runs the polling service. It imports from the src package.
"""

import sys

from src.main import run_service

__all__ = [
    "run_service",
]


if __name__ == "__main__":
    sys.exit(run_service())
