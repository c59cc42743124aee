# backend/eventreg/services/questionnaire.py
"""Per-attendee validation of answers against an event's questionnaire."""
import json
from typing import Iterable, Sequence

from eventreg.errors import ValidationError
from eventreg.models import EventQuestion, QuestionType


def _option_texts(event_question: EventQuestion) -> list[str]:
    return [opt.option_text for opt in event_question.question.options]


def _check_dropdown(event_question: EventQuestion, answer: str, who: str) -> None:
    question_text = event_question.question.question_text
    options = _option_texts(event_question)
    if not options:
        raise ValidationError(
            f'Question "{question_text}" is a DROPDOWN type but has no defined options. '
            f'Cannot validate response "{answer}".'
        )
    if answer not in options:
        raise ValidationError(
            f'Invalid option "{answer}" provided for question "{question_text}" for {who}. '
            f"Valid options are: {', '.join(options)}."
        )


def parse_checkbox_answer(answer: str) -> list[str]:
    """Decode a CHECKBOX answer; raises ValueError unless it is a JSON array of strings."""
    selected = json.loads(answer)
    if not isinstance(selected, list) or not all(isinstance(item, str) for item in selected):
        raise ValueError("expected a JSON array of strings")
    return selected


def _check_checkbox(event_question: EventQuestion, answer: str, who: str) -> None:
    question_text = event_question.question.question_text
    try:
        selected = parse_checkbox_answer(answer)
    except ValueError:
        raise ValidationError(
            f'Invalid response format for question "{question_text}" for {who}. '
            "Expected a JSON array of strings."
        )
    if event_question.is_required and not selected:
        raise ValidationError(
            f'At least one option must be selected for required question "{question_text}" for {who}.'
        )
    options = _option_texts(event_question)
    if selected and not options:
        raise ValidationError(
            f'Question "{question_text}" is a CHECKBOX type but has no defined options. Cannot validate response.'
        )
    for choice in selected:
        if choice not in options:
            raise ValidationError(
                f'Invalid option "{choice}" provided for question "{question_text}" for {who}. '
                f"Valid options are: {', '.join(options)}."
            )


def validate_responses(
    event_questions: Sequence[EventQuestion],
    responses: Iterable[tuple[int, str]],
    who: str = "attendee",
) -> None:
    """
    Accept or reject one attendee's answers.

    `responses` are (event_question_id, response_text) pairs. Raises
    ValidationError on the first problem: an unknown or repeated question id,
    a required question left unanswered or blank, or a choice answer that is
    not one of the question's options.
    """
    by_id = {eq.id: eq for eq in event_questions}
    answers: dict[int, str] = {}
    for event_question_id, text in responses:
        if event_question_id not in by_id:
            raise ValidationError(f"Invalid event question ID {event_question_id} provided for {who}.")
        if event_question_id in answers:
            raise ValidationError(f"Question {event_question_id} answered more than once for {who}.")
        answers[event_question_id] = text

    for eq in event_questions:
        if not eq.is_required:
            continue
        question_text = eq.question.question_text
        if eq.id not in answers:
            raise ValidationError(f'Response required for question "{question_text}" for {who}.')
        if answers[eq.id].strip() == "":
            raise ValidationError(f'Response cannot be empty for required question "{question_text}" for {who}.')

    for event_question_id, text in answers.items():
        if text.strip() == "":
            continue
        eq = by_id[event_question_id]
        if eq.question.question_type == QuestionType.DROPDOWN:
            _check_dropdown(eq, text, who)
        elif eq.question.question_type == QuestionType.CHECKBOX:
            _check_checkbox(eq, text, who)
