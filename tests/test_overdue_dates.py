"""Mini-README: Tests for timesheet submission deadlines and overdue detection.

Deadlines are 10:00 UTC on the next workday (Friday rolls to Monday).
"""

from datetime import date, datetime, timezone

from lexbill.models import Position
from lexbill.services_submissions import get_overdue_dates, get_submission_deadline, is_overdue
from factories import add_submission, add_user

THURSDAY = date(2026, 3, 5)
FRIDAY = date(2026, 3, 6)
SATURDAY = date(2026, 3, 7)
MONDAY = date(2026, 3, 9)


def _utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def test_weekday_deadline_is_next_morning() -> None:
    assert get_submission_deadline(THURSDAY) == _utc(2026, 3, 6, 10)


def test_friday_deadline_rolls_to_monday() -> None:
    assert get_submission_deadline(FRIDAY) == _utc(2026, 3, 9, 10)


def test_is_overdue_flips_at_deadline() -> None:
    assert is_overdue(THURSDAY, _utc(2026, 3, 6, 9, 59)) is False
    assert is_overdue(THURSDAY, _utc(2026, 3, 6, 10)) is True


def test_weekends_are_never_overdue() -> None:
    assert is_overdue(SATURDAY, _utc(2026, 3, 20)) is False


def test_overdue_dates_skip_submitted_days_oldest_first() -> None:
    now = _utc(2026, 3, 10, 12)

    overdue = get_overdue_dates(now, submitted={THURSDAY}, lookback_days=7)

    assert overdue == [date(2026, 3, 3), date(2026, 3, 4), FRIDAY, MONDAY]


def test_friday_not_overdue_over_the_weekend() -> None:
    now = _utc(2026, 3, 9, 9)

    assert FRIDAY not in get_overdue_dates(now, submitted=set(), lookback_days=3)


def test_overdue_route_lists_unsubmitted_weekdays(db, login) -> None:
    user = add_user(db, position=Position.SENIOR_ASSOCIATE)
    db.commit()

    response = login(user).get("/timesheets/overdue")

    assert response.status_code == 200
    overdue = response.json()["overdueDates"]
    assert overdue == sorted(overdue)
    assert all(date.fromisoformat(day).weekday() < 5 for day in overdue)


def test_overdue_route_omits_submitted_day(db, login) -> None:
    user = add_user(db)
    db.commit()
    client = login(user)
    first_overdue = client.get("/timesheets/overdue").json()["overdueDates"][0]
    add_submission(db, user=user, day=date.fromisoformat(first_overdue))
    db.commit()

    response = client.get("/timesheets/overdue")

    assert first_overdue not in response.json()["overdueDates"]
