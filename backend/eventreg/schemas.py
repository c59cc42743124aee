# backend/eventreg/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from eventreg.models import (
    EventStatus,
    PaymentStatus,
    QuestionType,
    Registration,
    RegistrationStatus,
    TicketStatus,
)
from eventreg.services.participants import ParticipantIdentity
from eventreg.services.registration import AttendeeInput, Page, TicketRequest


# Requests

class ResponseIn(BaseModel):
    event_question_id: int = Field(..., gt=0)
    response_text: str


class AttendeeIn(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    is_primary: bool = False
    ticket_id: Optional[int] = Field(None, gt=0)
    responses: List[ResponseIn] = []

    def to_input(self) -> AttendeeInput:
        identity = ParticipantIdentity(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            phone_number=self.phone_number,
            address=self.address,
            city=self.city,
            state=self.state,
            zip_code=self.zip_code,
            country=self.country,
        )
        return AttendeeInput(
            identity=identity,
            responses=[(r.event_question_id, r.response_text) for r in self.responses],
            is_primary=self.is_primary,
            ticket_id=self.ticket_id,
        )


class TicketLineIn(BaseModel):
    ticket_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class RegistrationCreate(BaseModel):
    event_id: int = Field(..., gt=0)
    tickets: List[TicketLineIn] = []
    attendees: List[AttendeeIn] = Field(..., min_length=1)
    idempotency_key: Optional[str] = Field(None, max_length=255)

    def ticket_requests(self) -> List[TicketRequest]:
        return [TicketRequest(ticket_id=t.ticket_id, quantity=t.quantity) for t in self.tickets]


class CancelRequest(BaseModel):
    status: Literal["CANCELLED"]


class StatusUpdate(BaseModel):
    status: RegistrationStatus


class PaymentSignal(BaseModel):
    registration_id: int = Field(..., gt=0)
    succeeded: bool
    provider_reference: Optional[str] = None
    currency: str = "aud"


# Responses

class RegistrationCreated(BaseModel):
    message: str
    registration_id: int
    status: RegistrationStatus


class ParticipantOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    user_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ResponseOut(BaseModel):
    id: int
    event_question_id: int
    question_text: str
    question_type: QuestionType
    response_text: str


class AttendeeOut(BaseModel):
    id: int
    ticket_id: Optional[int] = None
    participant: ParticipantOut
    responses: List[ResponseOut]


class PurchaseItemOut(BaseModel):
    id: int
    ticket_id: int
    ticket_name: str
    quantity: int
    unit_price: Decimal


class PaymentOut(BaseModel):
    id: int
    amount: Decimal
    currency: str
    status: PaymentStatus
    provider_reference: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PurchaseOut(BaseModel):
    id: int
    total_price: Decimal
    items: List[PurchaseItemOut]
    payment: Optional[PaymentOut] = None


class EventBriefOut(BaseModel):
    id: int
    name: str
    start_at: datetime
    organizer_id: int
    is_free: bool

    model_config = ConfigDict(from_attributes=True)


class RegistrationOut(BaseModel):
    id: int
    event_id: int
    status: RegistrationStatus
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    event: EventBriefOut
    participant: ParticipantOut
    attendees: List[AttendeeOut]
    purchase: Optional[PurchaseOut] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total_count: int
    total_pages: int


class RegistrationPage(BaseModel):
    data: List[RegistrationOut]
    pagination: Pagination


class RegistrationSummaryOut(BaseModel):
    registration_id: int
    registration_date: Optional[datetime] = None
    event_name: str
    primary_participant_name: str
    primary_participant_email: str
    number_of_attendees: int
    status: RegistrationStatus
    total_amount_paid: Optional[Decimal] = None


class RegistrationSummaryPage(BaseModel):
    data: List[RegistrationSummaryOut]
    pagination: Pagination


def registration_out(reg: Registration) -> RegistrationOut:
    purchase = None
    if reg.purchase is not None:
        purchase = PurchaseOut(
            id=reg.purchase.id,
            total_price=reg.purchase.total_price,
            items=[
                PurchaseItemOut(
                    id=item.id,
                    ticket_id=item.ticket_id,
                    ticket_name=item.ticket.name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for item in reg.purchase.items
            ],
            payment=PaymentOut.model_validate(reg.purchase.payment) if reg.purchase.payment else None,
        )
    return RegistrationOut(
        id=reg.id,
        event_id=reg.event_id,
        status=reg.status,
        user_id=reg.user_id,
        created_at=reg.created_at,
        event=EventBriefOut.model_validate(reg.event),
        participant=ParticipantOut.model_validate(reg.participant),
        attendees=[
            AttendeeOut(
                id=a.id,
                ticket_id=a.ticket_id,
                participant=ParticipantOut.model_validate(a.participant),
                responses=[
                    ResponseOut(
                        id=r.id,
                        event_question_id=r.event_question_id,
                        question_text=r.event_question.question.question_text,
                        question_type=r.event_question.question.question_type,
                        response_text=r.response_text,
                    )
                    for r in a.responses
                ],
            )
            for a in reg.attendees
        ],
        purchase=purchase,
    )


def summary_out(reg: Registration) -> RegistrationSummaryOut:
    return RegistrationSummaryOut(
        registration_id=reg.id,
        registration_date=reg.created_at,
        event_name=reg.event.name,
        primary_participant_name=f"{reg.participant.first_name} {reg.participant.last_name}",
        primary_participant_email=reg.participant.email,
        number_of_attendees=len(reg.attendees),
        status=reg.status,
        total_amount_paid=reg.purchase.total_price if reg.purchase else None,
    )


def pagination_out(page: Page) -> Pagination:
    return Pagination(page=page.page, limit=page.limit, total_count=page.total_count, total_pages=page.total_pages)


# Catalog

class TicketOut(BaseModel):
    id: int
    name: str
    price: Decimal
    quantity_total: int
    quantity_sold: int
    sales_start: Optional[datetime] = None
    sales_end: Optional[datetime] = None
    status: TicketStatus

    model_config = ConfigDict(from_attributes=True)


class EventOut(BaseModel):
    id: int
    name: str
    venue: Optional[str] = None
    start_at: datetime
    end_at: datetime
    capacity: int
    is_free: bool
    status: EventStatus

    model_config = ConfigDict(from_attributes=True)


class EventQuestionOut(BaseModel):
    id: int
    question_text: str
    question_type: QuestionType
    is_required: bool
    display_order: int
    options: List[str]


class EventDetailOut(EventOut):
    tickets: List[TicketOut]
    questions: List[EventQuestionOut]


class AvailabilityOut(BaseModel):
    ticket_id: int
    available: bool
    available_quantity: int
    reason: Optional[str] = None
