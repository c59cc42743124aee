# backend/scripts/seed_demo.py
"""
Usage:
  # ensure DATABASE_URL is set (or use the local default)
  python backend/scripts/seed_demo.py
This script will:
 - create an organizer and two participant users
 - create a free meetup and a paid conference (published)
 - attach tickets and a small questionnaire to the conference
Running it twice is safe: existing rows are matched by email / name.
"""
import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# The script is in backend/scripts/, so the backend dir is one level up
BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sqlalchemy import select  # noqa: E402
from eventreg.db import AsyncSessionLocal  # noqa: E402
from eventreg.models import (  # noqa: E402
    Event,
    EventQuestion,
    EventStatus,
    Question,
    QuestionOption,
    QuestionType,
    Ticket,
    User,
    UserRole,
)


async def _user(session, email, role):
    res = await session.execute(select(User).where(User.email == email))
    u = res.scalars().first()
    if not u:
        u = User(email=email, name=email.split("@")[0].title(), role=role)
        session.add(u)
        await session.flush()
    return u


async def _event(session, organizer, **fields):
    res = await session.execute(select(Event).where(Event.name == fields["name"]))
    existing = res.scalars().first()
    if existing:
        return existing, False
    e = Event(organizer_id=organizer.id, status=EventStatus.PUBLISHED, **fields)
    session.add(e)
    await session.flush()
    return e, True


async def _question(session, event, text, qtype, required, order, options=()):
    q = Question(question_text=text, question_type=qtype)
    session.add(q)
    await session.flush()
    for i, opt in enumerate(options):
        session.add(QuestionOption(question_id=q.id, option_text=opt, display_order=i))
    session.add(EventQuestion(event_id=event.id, question_id=q.id, is_required=required, display_order=order))


async def seed():
    async with AsyncSessionLocal() as session:
        async with session.begin():
            organizer = await _user(session, "olivia@example.com", UserRole.ORGANIZER)
            await _user(session, "alice@example.com", UserRole.PARTICIPANT)
            await _user(session, "bob@example.com", UserRole.PARTICIPANT)

            now = datetime.now(timezone.utc)
            meetup, _ = await _event(
                session,
                organizer,
                name="Community Meetup",
                venue="Hall B",
                start_at=now + timedelta(days=7),
                end_at=now + timedelta(days=7, hours=3),
                capacity=50,
                is_free=True,
            )

            conf, created = await _event(
                session,
                organizer,
                name="Tech Conference",
                venue="Convention Centre",
                start_at=now + timedelta(days=30),
                end_at=now + timedelta(days=31),
                capacity=200,
                is_free=False,
            )
            if created:
                # small quantities so sell-outs are easy to reproduce
                session.add_all(
                    [
                        Ticket(event_id=conf.id, name="General", price=Decimal("50.00"), quantity_total=5),
                        Ticket(event_id=conf.id, name="VIP", price=Decimal("150.00"), quantity_total=2),
                        Ticket(
                            event_id=conf.id,
                            name="Early Bird",
                            price=Decimal("35.00"),
                            quantity_total=10,
                            sales_end=now + timedelta(days=10),
                        ),
                    ]
                )
                await _question(session, conf, "Company", QuestionType.TEXT, False, 1)
                await _question(
                    session, conf, "T-shirt size", QuestionType.DROPDOWN, True, 2, options=("S", "M", "L", "XL")
                )
                await _question(
                    session,
                    conf,
                    "Workshops",
                    QuestionType.CHECKBOX,
                    False,
                    3,
                    options=("APIs", "Databases", "Security"),
                )

            events = [meetup, conf]

    print("Seed complete.")
    print("Organizer:", organizer.email, "id", organizer.id)
    print("Events created or existing:", [(e.id, e.name) for e in events])


if __name__ == "__main__":
    asyncio.run(seed())
