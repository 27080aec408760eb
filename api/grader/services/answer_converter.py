"""
Answer Converter
Translates between typed per-question answers and the flattened storage shape.
"""
import json
from typing import Dict, Iterable, Optional, Union

from pydantic import TypeAdapter

from grader.errors import InvalidArgumentError
from grader.log import get_logger
from grader.schemas import (
    LegacyQuestionType,
    MultipleChoiceSelection,
    QuestionAnswerValue,
    QuestionType,
    QuizAnswer,
    TypedQuestionAnswer,
)
from grader.services.quiz_resolver import AnyQuizConfig, find_question

logger = get_logger(__name__)

_typed_answer_adapter = TypeAdapter(TypedQuestionAnswer)

LEGACY_TYPE_MAP: Dict[QuestionType, LegacyQuestionType] = {
    QuestionType.MULTIPLE_CHOICE: LegacyQuestionType.MULTIPLE_CHOICE,
    QuestionType.CHOICE: LegacyQuestionType.MULTIPLE_CHOICE,
    QuestionType.RANKING: LegacyQuestionType.MULTIPLE_CHOICE,
    QuestionType.SHORT_ANSWER: LegacyQuestionType.SHORT_ANSWER,
    QuestionType.LONG_ANSWER: LegacyQuestionType.ESSAY,
    QuestionType.ARTICLE: LegacyQuestionType.ESSAY,
    QuestionType.WHITEBOARD: LegacyQuestionType.ESSAY,
    QuestionType.FILL_IN_THE_BLANK: LegacyQuestionType.FILL_BLANK,
    QuestionType.SINGLE_SELECTION_MATRIX: LegacyQuestionType.FILL_BLANK,
    QuestionType.MULTIPLE_SELECTION_MATRIX: LegacyQuestionType.FILL_BLANK,
}

# Grouped by where the value lives in storage.
TEXT_VALUE_TYPES = {
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.SHORT_ANSWER,
    QuestionType.LONG_ANSWER,
    QuestionType.ARTICLE,
    QuestionType.WHITEBOARD,
}
LIST_VALUE_TYPES = {QuestionType.CHOICE, QuestionType.RANKING}
RECORD_VALUE_TYPES = {
    QuestionType.FILL_IN_THE_BLANK,
    QuestionType.SINGLE_SELECTION_MATRIX,
    QuestionType.MULTIPLE_SELECTION_MATRIX,
}

if set(LEGACY_TYPE_MAP) != set(QuestionType):
    raise RuntimeError("Every question type needs a storage tag")


def map_question_type_to_legacy(question_type) -> LegacyQuestionType:
    return LEGACY_TYPE_MAP[QuestionType(question_type)]


def _parse_typed_answer(answer):
    if isinstance(answer, dict):
        return _typed_answer_adapter.validate_python(answer)
    return answer


def answer_type_matches_question(question, answer) -> bool:
    """True when a typed answer carries the same type tag as its question."""
    return _parse_typed_answer(answer).type == question.type


def convert_typed_answer_to_storage(question, answer, question_id: Optional[str] = None) -> QuizAnswer:
    """
    Flattens a typed answer into the storage shape.

    Args:
        question: The question being answered.
        answer: Typed answer (model or raw document).
        question_id: Storage id to record; defaults to the question id.
            Nested questions pass their compound id.

    Returns:
        QuizAnswer with text values in selected_answer, list values as
        selected multiple-choice entries, and record values as a JSON string.

    Raises:
        InvalidArgumentError: If the answer type does not match the question type.
    """
    answer = _parse_typed_answer(answer)
    if answer.type != question.type:
        raise InvalidArgumentError(
            f'Answer type "{answer.type}" does not match question type "{question.type}"'
        )

    stored = QuizAnswer(
        question_id=question_id if question_id is not None else str(question.id),
        question_text=question.prompt or "",
        question_type=map_question_type_to_legacy(question.type),
    )

    question_type = QuestionType(answer.type)
    if question_type in TEXT_VALUE_TYPES:
        stored.selected_answer = answer.value
    elif question_type in LIST_VALUE_TYPES:
        stored.multiple_choice_answers = [
            MultipleChoiceSelection(option=option, is_selected=True)
            for option in answer.value
        ]
    else:
        stored.selected_answer = json.dumps(answer.value)
    return stored


def _require(value, field: str, question_type: str):
    if not value:
        raise InvalidArgumentError(
            f"Stored answer missing {field} for {question_type} question"
        )
    return value


def convert_storage_answer_to_typed(question, stored: Union[QuizAnswer, dict]):
    """
    Rebuilds the typed answer for a question from its stored shape.

    A fill-in-the-blank value that is not JSON is read as a single blank
    named "blank".

    Raises:
        InvalidArgumentError: If the field the question type needs is missing
            or a matrix answer is not valid JSON.
    """
    if not isinstance(stored, QuizAnswer):
        stored = QuizAnswer.model_validate(stored)

    question_type = QuestionType(question.type)
    tag = question_type.value

    if question_type in TEXT_VALUE_TYPES:
        value = _require(stored.selected_answer, "selectedAnswer", tag)
        return _typed_answer_adapter.validate_python({"type": tag, "value": value})

    if question_type in LIST_VALUE_TYPES:
        _require(stored.multiple_choice_answers, "multipleChoiceAnswers", tag)
        return _typed_answer_adapter.validate_python(
            {"type": tag, "value": stored.selected_options()}
        )

    raw = _require(stored.selected_answer, "selectedAnswer", tag)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        if question_type == QuestionType.FILL_IN_THE_BLANK:
            return _typed_answer_adapter.validate_python({"type": tag, "value": {"blank": raw}})
        raise InvalidArgumentError(f"Invalid JSON format for {tag} answer")

    if not isinstance(value, dict):
        if question_type == QuestionType.FILL_IN_THE_BLANK:
            return _typed_answer_adapter.validate_python({"type": tag, "value": {"blank": raw}})
        raise InvalidArgumentError(f"Invalid JSON format for {tag} answer")
    return _typed_answer_adapter.validate_python({"type": tag, "value": value})


def convert_storage_answers_to_quiz_answers(
    config: AnyQuizConfig,
    stored_answers: Iterable[Union[QuizAnswer, dict]],
) -> Dict[str, QuestionAnswerValue]:
    """
    Loads stored answers into the form-state shape keyed by storage id.

    Answers for questions the config does not contain (e.g. from an older
    version) and answers that cannot be converted are skipped.
    """
    quiz_answers: Dict[str, QuestionAnswerValue] = {}

    for raw in stored_answers:
        stored = raw if isinstance(raw, QuizAnswer) else QuizAnswer.model_validate(raw)
        question = find_question(config, stored.question_id)
        if question is None:
            logger.debug("Skipping answer for unknown question %s", stored.question_id)
            continue
        try:
            typed = convert_storage_answer_to_typed(question, stored)
        except InvalidArgumentError as e:
            logger.warning("Skipping unreadable answer for %s: %s", stored.question_id, e)
            continue
        quiz_answers[stored.question_id] = typed.value

    return quiz_answers
