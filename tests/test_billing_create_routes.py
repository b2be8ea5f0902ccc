"""Mini-README: API tests for adding topics and manual line items to a service description.

New rows go to the end of their list, topic pricing goes through the same
validation as topic edits, and finalized service descriptions stay read-only.
"""

from datetime import date
from decimal import Decimal

import pytest

from lexbill.models import (
    Position,
    PricingMode,
    ServiceDescription,
    ServiceDescriptionLineItem,
    ServiceDescriptionStatus,
    ServiceDescriptionTopic,
)
from factories import add_billing_topic, add_client, add_line_item, add_service_description, add_user


@pytest.fixture
def draft(db):
    admin = add_user(db, name="Petra Novak", position=Position.ADMIN)
    associate = add_user(db, name="Ana Petrova")
    acme = add_client(db)
    service_description = add_service_description(db, client=acme)
    topic = add_billing_topic(db, service_description=service_description, display_order=4)
    db.commit()
    return {"admin": admin, "associate": associate, "client": acme, "draft": service_description, "topic": topic}


def _topics_url(draft) -> str:
    return f"/billing/{draft['draft'].id}/topics"


def _items_url(draft) -> str:
    return f"{_topics_url(draft)}/{draft['topic'].id}/items"


def test_new_topic_defaults_to_hourly_after_existing_topics(db, draft, login) -> None:
    response = login(draft["admin"]).post(_topics_url(draft), json={"topicName": " Litigation "})

    assert response.status_code == 201
    body = response.json()
    assert body["topicName"] == "Litigation"
    assert body["pricingMode"] == "HOURLY"
    assert body["displayOrder"] == 5
    assert body["lineItems"] == []
    db.expire_all()
    created = db.get(ServiceDescriptionTopic, body["id"])
    assert created.service_description_id == draft["draft"].id
    assert created.pricing_mode == PricingMode.HOURLY


def test_first_topic_gets_display_order_one(db, draft, login) -> None:
    empty = add_service_description(db, client=draft["client"])
    db.commit()

    response = login(draft["admin"]).post(f"/billing/{empty.id}/topics", json={"topicName": "Corporate"})

    assert response.status_code == 201
    assert response.json()["displayOrder"] == 1


def test_new_topic_pricing_is_normalized(draft, login) -> None:
    response = login(draft["admin"]).post(
        _topics_url(draft),
        json={
            "topicName": "Advisory",
            "hourlyRate": 250,
            "capHours": 40.004,
            "discountType": "AMOUNT",
            "discountValue": 500,
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["hourlyRate"] == 250.0
    assert body["capHours"] == 40.0
    assert body["discountType"] == "AMOUNT"
    assert body["discountValue"] == 500.0


def test_new_fixed_topic_never_keeps_a_cap(draft, login) -> None:
    response = login(draft["admin"]).post(
        _topics_url(draft),
        json={"topicName": "Fixed retainer", "pricingMode": "FIXED", "fixedFee": 5000, "capHours": 20},
    )

    assert response.status_code == 201
    assert response.json()["capHours"] is None
    assert response.json()["fixedFee"] == 5000.0


@pytest.mark.parametrize(
    ("payload", "detail"),
    [
        ({"topicName": "Advisory", "discountType": "PERCENTAGE", "discountValue": 150}, "Percentage discount cannot exceed 100"),
        ({"topicName": "Advisory", "pricingMode": "RETAINER"}, "pricingMode must be HOURLY or FIXED"),
        ({"topicName": "Advisory", "capHours": 0.004}, "capHours must be a positive number"),
    ],
)
def test_new_topic_pricing_rules_are_enforced(db, draft, login, payload, detail) -> None:
    response = login(draft["admin"]).post(_topics_url(draft), json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == detail
    db.expire_all()
    assert len(db.get(ServiceDescription, draft["draft"].id).topics) == 1


@pytest.mark.parametrize("payload", [{}, {"topicName": "   "}, {"topicName": None}])
def test_new_topic_requires_a_name(draft, login, payload) -> None:
    response = login(draft["admin"]).post(_topics_url(draft), json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Topic name is required"


def test_topic_cannot_be_added_to_finalized_service_description(db, draft, login) -> None:
    draft["draft"].status = ServiceDescriptionStatus.FINALIZED
    db.commit()

    response = login(draft["admin"]).post(_topics_url(draft), json={"topicName": "Litigation"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot modify finalized service description"


def test_topic_for_unknown_service_description_is_not_found(draft, login) -> None:
    response = login(draft["admin"]).post("/billing/9999/topics", json={"topicName": "Litigation"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Service description not found"


def test_non_admin_cannot_add_topics(draft, login) -> None:
    response = login(draft["associate"]).post(_topics_url(draft), json={"topicName": "Litigation"})

    assert response.status_code == 403


def test_manual_line_item_is_appended_to_topic(db, draft, login) -> None:
    add_line_item(db, billing_topic=draft["topic"])
    db.commit()
    client = login(draft["admin"])

    first = client.post(_items_url(draft), json={"description": " Court filing fees ", "date": "2026-03-04", "hours": 1.25})
    second = client.post(_items_url(draft), json={"description": "Travel"})

    assert first.status_code == 201
    body = first.json()
    assert body["description"] == "Court filing fees"
    assert body["date"] == "2026-03-04"
    assert body["hours"] == 1.25
    assert body["timeEntryId"] is None
    assert body["waiveMode"] is None
    assert body["displayOrder"] == 1
    assert second.json()["displayOrder"] == 2
    db.expire_all()
    stored = db.get(ServiceDescriptionLineItem, body["id"])
    assert stored.topic_id == draft["topic"].id
    assert stored.entry_date == date(2026, 3, 4)
    assert stored.hours == Decimal("1.25")


def test_zero_hour_line_item_stores_no_hours(draft, login) -> None:
    response = login(draft["admin"]).post(_items_url(draft), json={"description": "Disbursements", "hours": 0})

    assert response.status_code == 201
    assert response.json()["hours"] is None


@pytest.mark.parametrize("hours", [-1, 100])
def test_line_item_hours_out_of_range_rejected(draft, login, hours) -> None:
    response = login(draft["admin"]).post(_items_url(draft), json={"description": "Research", "hours": hours})

    assert response.status_code == 400
    assert response.json()["detail"] == "hours must be a positive number"


def test_line_item_requires_description(draft, login) -> None:
    response = login(draft["admin"]).post(_items_url(draft), json={"description": "  ", "hours": 1})

    assert response.status_code == 400
    assert response.json()["detail"] == "Description is required"


def test_line_item_topic_must_belong_to_service_description(db, draft, login) -> None:
    other = add_service_description(db, client=draft["client"])
    db.commit()

    response = login(draft["admin"]).post(
        f"/billing/{other.id}/topics/{draft['topic'].id}/items",
        json={"description": "Research"},
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Topic not found"


def test_line_item_cannot_be_added_to_finalized_service_description(db, draft, login) -> None:
    draft["draft"].status = ServiceDescriptionStatus.FINALIZED
    db.commit()

    response = login(draft["admin"]).post(_items_url(draft), json={"description": "Research"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot modify finalized service description"
