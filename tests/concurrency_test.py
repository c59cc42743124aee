"""Fire many simultaneous registrations at a running server and count outcomes.

Run against a seeded database (backend/scripts/seed_demo.py):
  BASE=http://localhost:8000 python tests/concurrency_test.py
With a ticket of quantity_total N, exactly N requests must succeed.
"""
import asyncio, httpx, os

BASE = os.getenv("BASE", "http://localhost:8000")
CONCURRENCY = int(os.getenv("CONCURRENCY", 50))
EVENT_NAME = os.getenv("EVENT_NAME", "Tech Conference")
TICKET_NAME = os.getenv("TICKET_NAME", "VIP")


async def find_ticket(client: httpx.AsyncClient) -> tuple[int, int, int, list]:
    r = await client.get(f"{BASE}/events")
    r.raise_for_status()
    for ev in r.json() or []:
        if ev["name"] != EVENT_NAME:
            continue
        detail = await client.get(f"{BASE}/events/{ev['id']}")
        detail.raise_for_status()
        for t in detail.json()["tickets"]:
            if t["name"] == TICKET_NAME:
                answers = [
                    {"event_question_id": q["id"], "response_text": q["options"][0] if q["options"] else "n/a"}
                    for q in detail.json()["questions"]
                    if q["is_required"]
                ]
                return ev["id"], t["id"], t["quantity_total"] - t["quantity_sold"], answers
    raise RuntimeError(f"No ticket {TICKET_NAME!r} on event {EVENT_NAME!r}; run seed_demo.py first")


async def main():
    async with httpx.AsyncClient(timeout=30) as client:
        event_id, ticket_id, remaining, answers = await find_ticket(client)

        async def try_register(i):
            try:
                r = await client.post(
                    f"{BASE}/registrations",
                    json={
                        "event_id": event_id,
                        "tickets": [{"ticket_id": ticket_id, "quantity": 1}],
                        "attendees": [
                            {
                                "email": f"load{i}@example.com",
                                "first_name": "Load",
                                "last_name": f"Tester{i}",
                                "responses": answers,
                            }
                        ],
                    },
                )
                # Prefer JSON, but fall back to text to avoid decode crashes
                try:
                    body = r.json() if r.content else None
                except ValueError:
                    body = r.text
                return r.status_code, body
            except httpx.HTTPError as e:
                return "err", str(e)

        results = await asyncio.gather(*[try_register(i) for i in range(CONCURRENCY)])
        success = sum(1 for st, _ in results if st == 201)
        conflict = sum(1 for st, _ in results if st == 409)
        print("remaining before:", remaining)
        print("total:", len(results), "success:", success, "conflict:", conflict)
        if success > remaining:
            print("OVERSOLD:", success - remaining, "extra registration(s)")
        rejected = [body for st, body in results if st not in (201, 409)]
        if rejected:
            print("other responses:", rejected)


if __name__ == "__main__":
    asyncio.run(main())
