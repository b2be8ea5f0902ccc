"""Mini-README: API tests for reading back a day's entries and a month's submissions.

Associates only ever see their own rows; admins see every entry of the day.
"""

from datetime import date, datetime

import pytest

from lexbill.models import Position
from factories import add_client, add_entry, add_submission, add_user

MONDAY = date(2026, 3, 2)
TUESDAY = date(2026, 3, 3)


@pytest.fixture
def day_entries(db):
    admin = add_user(db, name="Petra Novak", position=Position.ADMIN)
    ana = add_user(db, name="Ana Petrova")
    marko = add_user(db, name="Marko Ilic")
    acme = add_client(db)
    early = add_entry(db, user=ana, client=acme, entry_date=MONDAY, hours="1.00", description="Call with client")
    late = add_entry(db, user=ana, client=acme, entry_date=MONDAY, hours="2.50", description="Drafted memo")
    early.created_at = datetime(2026, 3, 2, 9, 0)
    late.created_at = datetime(2026, 3, 2, 15, 30)
    colleague = add_entry(db, user=marko, client=acme, entry_date=MONDAY, hours="3.00")
    other_day = add_entry(db, user=ana, client=acme, entry_date=TUESDAY, hours="4.00")
    db.commit()
    return {
        "admin": admin,
        "ana": ana,
        "client": acme,
        "early": early,
        "late": late,
        "colleague": colleague,
        "other_day": other_day,
    }


def test_associate_sees_own_entries_for_the_day_newest_first(day_entries, login) -> None:
    response = login(day_entries["ana"]).get("/timesheets", params={"date": MONDAY.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert [entry["id"] for entry in body] == [day_entries["late"].id, day_entries["early"].id]
    assert body[0]["hours"] == 2.5
    assert body[0]["date"] == "2026-03-02"
    assert body[0]["client"] == {"id": day_entries["client"].id, "name": "Acme Holdings"}


def test_admin_sees_every_entry_of_the_day(day_entries, login) -> None:
    response = login(day_entries["admin"]).get("/timesheets", params={"date": MONDAY.isoformat()})

    assert response.status_code == 200
    assert {entry["id"] for entry in response.json()} == {
        day_entries["early"].id,
        day_entries["late"].id,
        day_entries["colleague"].id,
    }


def test_day_without_entries_is_empty(day_entries, login) -> None:
    response = login(day_entries["ana"]).get("/timesheets", params={"date": "2026-03-04"})

    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.parametrize(
    ("params", "detail"),
    [
        ({}, "Date parameter is required"),
        ({"date": ""}, "Date parameter is required"),
        ({"date": "02/03/2026"}, "Invalid date format"),
        ({"date": "2026-02-30"}, "Invalid date format"),
    ],
)
def test_day_listing_requires_valid_date(day_entries, login, params, detail) -> None:
    response = login(day_entries["ana"]).get("/timesheets", params=params)

    assert response.status_code == 400
    assert response.json()["detail"] == detail


def test_submissions_are_listed_for_the_requested_month_only(db, login) -> None:
    ana = add_user(db)
    marko = add_user(db, name="Marko Ilic")
    add_submission(db, user=ana, day=date(2026, 3, 31))
    add_submission(db, user=ana, day=date(2026, 3, 2))
    add_submission(db, user=ana, day=date(2026, 2, 27))
    add_submission(db, user=ana, day=date(2026, 4, 1))
    add_submission(db, user=marko, day=date(2026, 3, 3))
    db.commit()

    response = login(ana).get("/timesheets/submissions", params={"year": 2026, "month": 3})

    assert response.status_code == 200
    assert response.json() == ["2026-03-02", "2026-03-31"]


def test_february_submissions_stop_at_month_end(db, login) -> None:
    ana = add_user(db)
    add_submission(db, user=ana, day=date(2028, 2, 29))
    add_submission(db, user=ana, day=date(2028, 3, 1))
    db.commit()

    response = login(ana).get("/timesheets/submissions", params={"year": 2028, "month": 2})

    assert response.json() == ["2028-02-29"]


@pytest.mark.parametrize(
    ("params", "detail"),
    [
        ({}, "Year and month are required"),
        ({"year": 2026}, "Year and month are required"),
        ({"year": "twenty", "month": 3}, "Invalid year or month"),
        ({"year": 2026, "month": 13}, "Invalid year or month"),
        ({"year": 2026, "month": 0}, "Invalid year or month"),
    ],
)
def test_submission_listing_requires_valid_year_and_month(db, login, params, detail) -> None:
    ana = add_user(db)
    db.commit()

    response = login(ana).get("/timesheets/submissions", params=params)

    assert response.status_code == 400
    assert response.json()["detail"] == detail
