# backend/eventreg/services/participants.py
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventreg.models import Participant


@dataclass(frozen=True)
class ParticipantIdentity:
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _by_email(session: AsyncSession, email: str) -> Optional[Participant]:
    res = await session.execute(select(Participant).where(Participant.email == email))
    return res.scalars().first()


async def find_or_create(
    session: AsyncSession,
    identity: ParticipantIdentity,
    user_id: Optional[int] = None,
    seen: Optional[dict[str, Participant]] = None,
) -> Participant:
    """
    Return the participant for this email, creating it when absent.

    `seen` is the per-request cache: the same email always maps to the same
    row within one registration. An existing participant keeps its stored
    details; it only gains a user link if it had none.
    """
    email = normalize_email(identity.email)
    if seen is not None and email in seen:
        participant = seen[email]
    else:
        participant = await _by_email(session, email)
        if participant is None:
            participant = Participant(
                email=email,
                first_name=identity.first_name.strip(),
                last_name=identity.last_name.strip(),
                phone_number=identity.phone_number,
                address=identity.address,
                city=identity.city,
                state=identity.state,
                zip_code=identity.zip_code,
                country=identity.country,
                user_id=user_id,
            )
            try:
                async with session.begin_nested():
                    session.add(participant)
                    await session.flush()
            except IntegrityError:
                # another request inserted the same email first; use theirs
                participant = await _by_email(session, email)
                if participant is None:
                    raise

    if user_id is not None and participant.user_id is None:
        participant.user_id = user_id
    if seen is not None:
        seen[email] = participant
    return participant
