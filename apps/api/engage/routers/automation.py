from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import sessionmaker

from engage.core.database import get_session_factory
from engage.services import automation

router = APIRouter()

# Every route takes an optional ?run_date=YYYY-MM-DD so a missed day can be
# replayed; re-running a day that already ran creates nothing new.


@router.post("/process")
def process_all(
    run_date: Optional[date] = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    results = automation.process_all_triggers(run_date=run_date, session_factory=session_factory)
    return {"message": "Automation triggers processed", "results": results}


@router.post("/birthdays")
def process_birthdays(
    run_date: Optional[date] = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    result = automation.process_birthday_triggers(run_date=run_date, session_factory=session_factory)
    return {"message": "Birthday automation processed", "result": result}


@router.post("/anniversaries")
def process_anniversaries(
    run_date: Optional[date] = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    result = automation.process_anniversary_triggers(run_date=run_date, session_factory=session_factory)
    return {"message": "Anniversary automation processed", "result": result}


@router.post("/custom-events")
def process_custom_events(
    run_date: Optional[date] = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    result = automation.process_custom_event_triggers(run_date=run_date, session_factory=session_factory)
    return {"message": "Custom event automation processed", "result": result}
