"""Example: one working day through AttendanceService, no Flask.

Needs a reachable MySQL with database/schema.sql applied (scripts/init_db.py).
Timestamps are synthetic so the run finishes immediately.
"""

from datetime import timedelta

from config import load_settings

from src.timeclock.timeclock.common.datetime_utils import format_duration, now_local
from src.timeclock.timeclock.container import build_container
from src.timeclock.timeclock.core.exceptions import AlreadyClockedIn

EMPLOYEE = "emp-demo"


def main():
    service = build_container(db_config=load_settings().DB_CONFIG).attendance_service

    start = now_local()
    try:
        session = service.clock_in(EMPLOYEE, "company-demo", None, None, now=start)
    except AlreadyClockedIn as e:
        session = e.session
        start = session.last_event_time()
    print("open:", session.session_id, session.status.value)

    service.pause(EMPLOYEE, now=start + timedelta(hours=2))
    service.resume(EMPLOYEE, now=start + timedelta(hours=2, minutes=15))
    print("elapsed at +3h:", format_duration(service.elapsed(EMPLOYEE, now=start + timedelta(hours=3))))

    closed = service.clock_out(EMPLOYEE, now=start + timedelta(hours=8))
    print("closed:", closed.status.value, f"{closed.total_hours:.2f}h")

    for past in service.history(EMPLOYEE, limit=3):
        print(" ", past.work_date.isoformat(), past.status.value, f"{past.total_hours:.2f}h")


if __name__ == "__main__":
    main()
