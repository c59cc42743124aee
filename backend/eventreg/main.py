# backend/eventreg/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from eventreg.db import engine, get_session
from eventreg.errors import NotFoundError, RegistrationError
from eventreg.models import Base, Event, EventQuestion, EventStatus, Question
from eventreg.routes.payments import router as payments_router
from eventreg.routes.registrations import router as registrations_router
from eventreg.schemas import AvailabilityOut, EventDetailOut, EventOut, EventQuestionOut, TicketOut
from eventreg.services.inventory import check_availability

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "1") == "1"

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_TABLES:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception:
            # migrations remain the source of truth; the API can still start
            logger.exception("Could not create tables on startup")
    yield


app = FastAPI(title="Event Registration - Backend", lifespan=lifespan)

app.include_router(registrations_router)
app.include_router(payments_router)


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/events", response_model=List[EventOut])
async def list_events(limit: int = 50, upcoming_only: bool = True, session: AsyncSession = Depends(get_session)):
    q = select(Event).where(Event.status == EventStatus.PUBLISHED)
    if upcoming_only:
        q = q.where(Event.start_at >= func.now())
    q = q.order_by(Event.start_at).limit(limit)
    res = await session.execute(q)
    return res.scalars().all()


@app.get("/events/{event_id}", response_model=EventDetailOut)
async def get_event(event_id: int, session: AsyncSession = Depends(get_session)):
    res = await session.execute(
        select(Event)
        .options(
            selectinload(Event.tickets),
            selectinload(Event.event_questions).selectinload(EventQuestion.question).selectinload(Question.options),
        )
        .where(Event.id == event_id)
    )
    ev = res.scalars().first()
    if not ev or ev.status != EventStatus.PUBLISHED:
        raise NotFoundError("event not found")
    return EventDetailOut(
        **EventOut.model_validate(ev).model_dump(),
        tickets=[TicketOut.model_validate(t) for t in ev.tickets],
        questions=[
            EventQuestionOut(
                id=eq.id,
                question_text=eq.question.question_text,
                question_type=eq.question.question_type,
                is_required=eq.is_required,
                display_order=eq.display_order,
                options=[opt.option_text for opt in eq.question.options],
            )
            for eq in ev.event_questions
        ],
    )


@app.get("/tickets/{ticket_id}/availability", response_model=AvailabilityOut)
async def ticket_availability(ticket_id: int, session: AsyncSession = Depends(get_session)):
    result = await check_availability(session, ticket_id)
    return AvailabilityOut(
        ticket_id=ticket_id,
        available=result.available,
        available_quantity=result.available_quantity,
        reason=result.reason,
    )
