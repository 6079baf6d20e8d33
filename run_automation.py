#!/usr/bin/env python3
"""
Daily automation run: birthdays, work anniversaries and custom employee events.
Point the scheduler (cron, Render cron job, ...) at this once a day.
Running it again for the same day does not create duplicate timeline items.

Usage:
    python run_automation.py [YYYY-MM-DD]

Example:
    python run_automation.py              # today
    python run_automation.py 2024-03-15   # replay a missed day
"""

import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import List

# Add the apps/api directory to the path so we can import from engage
api_dir = Path(__file__).parent / "apps" / "api"
sys.path.insert(0, str(api_dir))

from engage.core.config import settings
from engage.core.logging import configure_logging
from engage.services.automation import process_all_triggers


def run(run_date: date) -> bool:
    """Run all triggers for `run_date`. Returns False if any branch reported errors."""
    results = process_all_triggers(run_date=run_date)

    print(json.dumps(results.model_dump(), indent=2))

    return not (
        results.birthdays.errors
        or results.anniversaries.errors
        or results.custom_events.errors
    )


def main(argv: List[str]) -> int:
    if len(argv) > 1:
        print("Usage: python run_automation.py [YYYY-MM-DD]")
        return 1

    try:
        run_date = date.fromisoformat(argv[0]) if argv else date.today()
    except ValueError:
        print(f"❌ Invalid date: {argv[0]} (expected YYYY-MM-DD)")
        return 1

    configure_logging(settings.log_level)
    # "no templates" and per-employee failures are reported, not fatal
    return 0 if run(run_date) else 2


def finish(code: int) -> None:
    """Exit without joining worker threads.

    A branch that timed out keeps its thread running, and a normal exit
    would wait for it.
    """
    sys.stdout.flush()
    sys.stderr.flush()
    for handler in logging.getLogger().handlers:
        handler.flush()
    os._exit(code)


if __name__ == "__main__":
    finish(main(sys.argv[1:]))
