"""HTTP binding: routing, header identity and error status mapping."""
from decimal import Decimal

import pytest

from factories import ADMIN_HEADERS
from eventreg.models import QuestionType


def body(event, tickets=(), attendees=None, **extra):
    payload = {
        "event_id": event.id,
        "tickets": [{"ticket_id": t.id, "quantity": q} for t, q in tickets],
        "attendees": attendees
        or [{"email": "ana@example.com", "first_name": "Ana", "last_name": "Lopez", "responses": []}],
    }
    payload.update(extra)
    return payload


@pytest.fixture
async def owner(catalog):
    return await catalog.user("ana@example.com")


def as_user(user):
    return {"X-User-Id": str(user.id)}


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_event_catalog(client, catalog, paid_event):
    await catalog.ticket(paid_event, name="General")
    await catalog.question(paid_event, "T-shirt size", QuestionType.DROPDOWN, required=True, options=("S", "M"))

    listed = await client.get("/events", params={"upcoming_only": "false"})
    assert [e["name"] for e in listed.json()] == ["Tech Conference"]

    detail = await client.get(f"/events/{paid_event.id}")
    assert detail.status_code == 200
    data = detail.json()
    assert [t["name"] for t in data["tickets"]] == ["General"]
    assert data["questions"][0]["options"] == ["S", "M"]
    assert (await client.get("/events/999")).status_code == 404


async def test_create_then_read_paid_registration(client, catalog, paid_event, owner):
    ticket = await catalog.ticket(paid_event, price="50.00", quantity_total=3)
    r = await client.post("/registrations", json=body(paid_event, [(ticket, 1)]), headers=as_user(owner))
    assert r.status_code == 201
    created = r.json()
    assert created["status"] == "PENDING"
    assert created["message"] == "Registration pending payment"

    r = await client.get(f"/registrations/{created['registration_id']}", headers=as_user(owner))
    assert r.status_code == 200
    reg = r.json()
    assert reg["participant"]["email"] == "ana@example.com"
    assert Decimal(reg["purchase"]["total_price"]) == Decimal("50")
    assert reg["purchase"]["items"][0]["ticket_name"] == "General"

    availability = await client.get(f"/tickets/{ticket.id}/availability")
    assert availability.json() == {"ticket_id": ticket.id, "available": True, "available_quantity": 2, "reason": None}


class TestErrorMapping:
    async def test_validation_error_is_400(self, client, catalog, paid_event):
        ticket = await catalog.ticket(paid_event)
        r = await client.post("/registrations", json=body(paid_event, [(ticket, 2)]))
        assert r.status_code == 400
        assert "Number of participants" in r.json()["detail"]

    async def test_capacity_error_is_409(self, client, catalog, paid_event):
        ticket = await catalog.ticket(paid_event, quantity_total=1, quantity_sold=1)
        r = await client.post("/registrations", json=body(paid_event, [(ticket, 1)]))
        assert r.status_code == 409

    async def test_duplicate_idempotency_key_is_409(self, client, free_event):
        first = await client.post("/registrations", json=body(free_event, idempotency_key="abc"))
        assert first.status_code == 201
        again = await client.post("/registrations", json=body(free_event, idempotency_key="abc"))
        assert again.status_code == 409

    async def test_not_found_is_404(self, client):
        r = await client.get("/registrations/12345", headers=ADMIN_HEADERS)
        assert r.status_code == 404

    async def test_guest_read_is_401(self, client, free_event):
        created = (await client.post("/registrations", json=body(free_event))).json()
        r = await client.get(f"/registrations/{created['registration_id']}")
        assert r.status_code == 401

    async def test_stranger_read_is_403(self, client, catalog, free_event, owner):
        stranger = await catalog.user("mallory@example.com")
        created = (await client.post("/registrations", json=body(free_event), headers=as_user(owner))).json()
        r = await client.get(f"/registrations/{created['registration_id']}", headers=as_user(stranger))
        assert r.status_code == 403

    async def test_unknown_role_header_is_400(self, client):
        r = await client.get("/registrations", headers={"X-User-Id": "1", "X-User-Role": "wizard"})
        assert r.status_code == 400

    async def test_malformed_body_is_422(self, client, free_event):
        r = await client.post("/registrations", json={"event_id": free_event.id, "attendees": []})
        assert r.status_code == 422


async def test_cancel_via_patch(client, catalog, paid_event, owner):
    ticket = await catalog.ticket(paid_event, quantity_total=2)
    created = (
        await client.post("/registrations", json=body(paid_event, [(ticket, 1)]), headers=as_user(owner))
    ).json()
    url = f"/registrations/{created['registration_id']}"

    r = await client.patch(url, json={"status": "CONFIRMED"}, headers=as_user(owner))
    assert r.status_code == 422

    r = await client.patch(url, json={"status": "CANCELLED"}, headers=as_user(owner))
    assert r.status_code == 200
    assert r.json()["status"] == "CANCELLED"
    assert await catalog.sold(ticket) == 0


async def test_status_override_by_organizer(client, catalog, paid_event, organizer):
    ticket = await catalog.ticket(paid_event)
    created = (await client.post("/registrations", json=body(paid_event, [(ticket, 1)]))).json()
    r = await client.patch(
        f"/registrations/{created['registration_id']}/status",
        json={"status": "CONFIRMED"},
        headers={"X-User-Id": str(organizer.id), "X-User-Role": "ORGANIZER"},
    )
    assert r.status_code == 200
    assert r.json()["status"] == "CONFIRMED"


async def test_summary_listings(client, catalog, paid_event, organizer):
    ticket = await catalog.ticket(paid_event, price="30.00")
    await client.post(
        "/registrations",
        json=body(
            paid_event,
            [(ticket, 2)],
            attendees=[
                {"email": "ana@example.com", "first_name": "Ana", "last_name": "Lopez", "is_primary": True},
                {"email": "ben@example.com", "first_name": "Ben", "last_name": "Okafor"},
            ],
        ),
    )

    r = await client.get(f"/events/{paid_event.id}/registrations", headers={"X-User-Id": str(organizer.id)})
    assert r.status_code == 200
    page = r.json()
    assert page["pagination"] == {"page": 1, "limit": 10, "total_count": 1, "total_pages": 1}
    row = page["data"][0]
    assert row["primary_participant_name"] == "Ana Lopez"
    assert row["number_of_attendees"] == 2
    assert Decimal(row["total_amount_paid"]) == Decimal("60")

    assert (await client.get("/admin/registrations", headers=ADMIN_HEADERS)).json()["pagination"]["total_count"] == 1
    assert (await client.get("/admin/registrations", headers=as_user(organizer))).status_code == 403


async def test_payment_signal_requires_admin_key(client, catalog, paid_event):
    ticket = await catalog.ticket(paid_event)
    created = (await client.post("/registrations", json=body(paid_event, [(ticket, 1)]))).json()
    payload = {"registration_id": created["registration_id"], "succeeded": True, "provider_reference": "pi_9"}

    assert (await client.post("/payments/signal", json=payload)).status_code == 401
    r = await client.post("/payments/signal", json=payload, headers=ADMIN_HEADERS)
    assert r.status_code == 200
    assert r.json()["status"] == "CONFIRMED"
    assert r.json()["purchase"]["payment"]["status"] == "COMPLETED"
