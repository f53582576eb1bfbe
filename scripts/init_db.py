#!/usr/bin/env python3
"""
Weekboard schema bootstrap

Purpose:
    - Creates the ``timetables`` table and its index if they are missing.
    - Safe to run on every deploy.
"""

from weekboard.infrastructure.postgres_dal import PostgresDal
from weekboard.logging_setup import get_logger

logger = get_logger("DB")


def main() -> None:
    dal = PostgresDal()
    try:
        dal.ensure_schema()
        logger.info("Timetable schema is up to date.")
    finally:
        dal.close()


if __name__ == "__main__":
    main()
