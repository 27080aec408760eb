"""
Per-Question Grader
Scores one submitted answer against one question, per question type and scoring policy.

Grading never raises for learner input: missing, empty or malformed answers
degrade to zero credit with an explanatory feedback string.
"""
import json
import math
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Callable, Dict, List, Optional, Set

from grader.config import (
    DEFAULT_ESSAY_MIN_LENGTH,
    ESSAY_PARTIAL_CREDIT_RATIO,
    get_feedback,
    round_half_up,
)
from grader.errors import InvalidArgumentError
from grader.log import get_logger
from grader.schemas import (
    MatrixScoring,
    PartialMatchScoring,
    QuestionGradingResult,
    QuestionType,
    QuizAnswer,
    RankingScoring,
    RubricScoring,
    WeightedScoring,
)
from grader.services.scoring import format_points, get_question_points

logger = get_logger(__name__)


@dataclass
class GradeOutcome:
    points: float
    is_correct: Optional[bool]
    feedback: str


@dataclass(frozen=True)
class GradingOptions:
    essay_min_length: int = DEFAULT_ESSAY_MIN_LENGTH


def normalize_text(value: Optional[str], case_sensitive: bool = False) -> str:
    """Trim surrounding whitespace and, unless case-sensitive, lower-case."""
    text = (value or "").strip()
    return text if case_sensitive else text.lower()


def text_similarity(submitted: str, expected: str) -> float:
    """Similarity ratio between two normalized strings, 0..1."""
    if not submitted and not expected:
        return 1.0
    return SequenceMatcher(None, submitted, expected).ratio()


# ============================================================================
# ANSWER READERS
# ============================================================================

def selected_keys(answer: QuizAnswer) -> List[str]:
    """Selected option keys, from the multi-select list or a single selected value."""
    if answer.multiple_choice_answers:
        return answer.selected_options()
    if answer.selected_answer:
        return [answer.selected_answer]
    return []


def answer_sequence(answer: QuizAnswer) -> List[str]:
    """Ordered keys of a ranking answer."""
    if answer.multiple_choice_answers:
        return answer.selected_options()
    raw = answer.selected_answer
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return [raw]
    if isinstance(parsed, list):
        return [str(item) for item in parsed]
    return [raw]


def answer_mapping(answer: QuizAnswer) -> Optional[dict]:
    """
    Decodes a record-valued answer stored as a JSON object string.

    Returns:
        The decoded mapping, or None when the stored value is not a JSON object.
    """
    raw = answer.selected_answer
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _as_key_set(value) -> Set[str]:
    if value is None:
        return set()
    if isinstance(value, (list, tuple, set)):
        return {str(item) for item in value}
    return {str(value)}


# ============================================================================
# CORRECT-ANSWER ECHO
# ============================================================================

def _labels(keys, labels: Dict[str, str]) -> List[str]:
    return [labels.get(key) or key for key in keys]


def get_correct_answer_string(question) -> Optional[str]:
    """Human-readable correct answer for review, or None when there is none."""
    question_type = QuestionType(question.type)

    if question_type == QuestionType.MULTIPLE_CHOICE:
        if not question.correct_answer:
            return None
        return question.options.get(question.correct_answer) or question.correct_answer

    if question_type == QuestionType.CHOICE:
        if not question.correct_answers:
            return None
        return ", ".join(_labels(question.correct_answers, question.options))

    if question_type in (QuestionType.SHORT_ANSWER, QuestionType.LONG_ANSWER):
        return question.correct_answer or None

    if question_type == QuestionType.FILL_IN_THE_BLANK:
        if not question.correct_answers:
            return None
        return ", ".join(question.correct_answers.values())

    if question_type == QuestionType.RANKING:
        if not question.correct_order:
            return None
        return " > ".join(_labels(question.correct_order, question.items))

    if question_type in (
        QuestionType.SINGLE_SELECTION_MATRIX,
        QuestionType.MULTIPLE_SELECTION_MATRIX,
    ):
        if not question.correct_answers:
            return None
        parts = []
        for row_key, expected in question.correct_answers.items():
            columns = ", ".join(_labels(sorted(_as_key_set(expected)), question.columns))
            parts.append(f"{question.rows.get(row_key) or row_key}: {columns}")
        return "; ".join(parts)

    return None


# ============================================================================
# SCORING ARITHMETIC
# ============================================================================

def weighted_points(
    scoring: WeightedScoring,
    correct_count: int,
    incorrect_count: int,
    total_count: int,
) -> float:
    """Per-item credit, minus penalties under partial-with-penalty."""
    if scoring.points_per_correct is not None:
        per_correct = scoring.points_per_correct
    else:
        per_correct = scoring.max_points / total_count if total_count else 0

    points = per_correct * correct_count
    if scoring.mode == "partial-with-penalty":
        points -= (scoring.penalty_per_incorrect or 0) * incorrect_count
    return points


def clamp_points(points: float, max_points: float) -> float:
    """Clamp earned points into [0, max_points], rounded to 2 decimals."""
    return round_half_up(min(max(points, 0), max_points))


def _partial_or_incorrect(points: float, max_points: float, correct_answer: str, kind: str) -> str:
    if points > 0:
        return get_feedback(
            "partial",
            earned=format_points(clamp_points(points, max_points)),
            max_points=format_points(max_points),
            correct_answer=correct_answer,
        )
    return get_feedback(kind, correct_answer=correct_answer)


# ============================================================================
# PER-TYPE GRADERS
# ============================================================================

def _grade_multiple_choice(question, answer, max_points, options) -> GradeOutcome:
    selected = selected_keys(answer)
    correct = question.correct_answer

    if correct and len(selected) == 1 and selected[0] == correct:
        return GradeOutcome(max_points, True, get_feedback("correct"))

    label = get_correct_answer_string(question) or ""
    return GradeOutcome(0, False, get_feedback("incorrect", correct_answer=label))


def _grade_choice(question, answer, max_points, options) -> GradeOutcome:
    selected = set(selected_keys(answer))
    correct = set(question.correct_answers)
    label = get_correct_answer_string(question) or ""

    if selected == correct:
        return GradeOutcome(max_points, True, get_feedback("correct"))

    scoring = question.scoring
    if isinstance(scoring, WeightedScoring) and scoring.mode != "all-or-nothing":
        points = weighted_points(
            scoring,
            correct_count=len(selected & correct),
            incorrect_count=len(selected - correct),
            total_count=len(correct),
        )
        return GradeOutcome(
            points, False, _partial_or_incorrect(points, max_points, label, "incorrect_multiple")
        )

    return GradeOutcome(0, False, get_feedback("incorrect_multiple", correct_answer=label))


def _grade_short_answer(question, answer, max_points, options) -> GradeOutcome:
    scoring = question.scoring
    case_sensitive = isinstance(scoring, PartialMatchScoring) and scoring.case_sensitive
    expected = normalize_text(question.correct_answer, case_sensitive)
    submitted = normalize_text(answer.selected_answer, case_sensitive)
    label = question.correct_answer or ""

    if expected and submitted == expected:
        return GradeOutcome(max_points, True, get_feedback("correct"))

    if isinstance(scoring, PartialMatchScoring) and expected and submitted:
        ratio = text_similarity(submitted, expected)
        if ratio >= scoring.match_threshold:
            points = max_points * ratio
            return GradeOutcome(
                points, False, _partial_or_incorrect(points, max_points, label, "incorrect")
            )

    return GradeOutcome(0, False, get_feedback("incorrect", correct_answer=label))


def _grade_essay(question, answer, max_points, options) -> GradeOutcome:
    # Heuristic credit only; correctness is left to a human grader.
    answer_length = len(answer.selected_answer or "")
    if answer_length > options.essay_min_length:
        points = math.floor(max_points * ESSAY_PARTIAL_CREDIT_RATIO)
        return GradeOutcome(points, False, get_feedback("essay_submitted"))
    return GradeOutcome(0, False, get_feedback("essay_too_short"))


def _blank_answers(question, answer: QuizAnswer) -> Dict[str, str]:
    mapping = answer_mapping(answer)
    if mapping is not None:
        return {str(key): "" if value is None else str(value) for key, value in mapping.items()}
    # A bare string answers the first (usually only) blank.
    blank_ids = list(question.correct_answers)
    if not blank_ids:
        return {}
    return {blank_ids[0]: answer.selected_answer or ""}


def _grade_fill_in_the_blank(question, answer, max_points, options) -> GradeOutcome:
    scoring = question.scoring
    case_sensitive = isinstance(scoring, PartialMatchScoring) and scoring.case_sensitive
    expected = question.correct_answers
    submitted = _blank_answers(question, answer)
    label = get_correct_answer_string(question) or ""

    correct_count = 0
    incorrect_count = 0
    similarities = []
    for blank_id, expected_value in expected.items():
        given = normalize_text(submitted.get(blank_id), case_sensitive)
        wanted = normalize_text(expected_value, case_sensitive)
        if given == wanted:
            correct_count += 1
            similarities.append(1.0)
        elif given:
            incorrect_count += 1
            similarities.append(text_similarity(given, wanted))
        else:
            similarities.append(0.0)

    if expected and correct_count == len(expected):
        return GradeOutcome(max_points, True, get_feedback("correct"))

    if isinstance(scoring, WeightedScoring) and scoring.mode != "all-or-nothing":
        points = weighted_points(scoring, correct_count, incorrect_count, len(expected))
        return GradeOutcome(points, False, _partial_or_incorrect(points, max_points, label, "incorrect"))

    if isinstance(scoring, PartialMatchScoring) and expected:
        credited = [ratio for ratio in similarities if ratio >= scoring.match_threshold]
        points = max_points * sum(credited) / len(expected)
        return GradeOutcome(points, False, _partial_or_incorrect(points, max_points, label, "incorrect"))

    return GradeOutcome(0, False, get_feedback("incorrect", correct_answer=label))


def _grade_ranking(question, answer, max_points, options) -> GradeOutcome:
    submitted = answer_sequence(answer)
    correct = list(question.correct_order)
    label = get_correct_answer_string(question) or ""

    if correct and submitted == correct:
        return GradeOutcome(max_points, True, get_feedback("correct"))

    scoring = question.scoring
    if isinstance(scoring, RankingScoring) and scoring.mode == "partial-order" and correct:
        matched = sum(
            1 for position, key in enumerate(correct)
            if position < len(submitted) and submitted[position] == key
        )
        if scoring.points_per_correct_position is not None:
            per_position = scoring.points_per_correct_position
        else:
            per_position = scoring.max_points / len(correct)
        points = per_position * matched
        return GradeOutcome(points, False, _partial_or_incorrect(points, max_points, label, "incorrect_order"))

    return GradeOutcome(0, False, get_feedback("incorrect_order", correct_answer=label))


def _grade_matrix(question, answer, max_points, options) -> GradeOutcome:
    submitted = answer_mapping(answer)
    if submitted is None:
        raise InvalidArgumentError(
            f"Matrix answer for question '{question.id}' is not a JSON object"
        )

    expected = question.correct_answers
    label = get_correct_answer_string(question) or ""
    matched_rows = sum(
        1 for row_key, wanted in expected.items()
        if _as_key_set(submitted.get(row_key)) == _as_key_set(wanted)
    )

    if expected and matched_rows == len(expected):
        return GradeOutcome(max_points, True, get_feedback("correct"))

    scoring = question.scoring
    if isinstance(scoring, MatrixScoring) and scoring.mode == "partial":
        points = scoring.points_per_row * matched_rows
        return GradeOutcome(points, False, _partial_or_incorrect(points, max_points, label, "incorrect"))

    return GradeOutcome(0, False, get_feedback("incorrect", correct_answer=label))


def _grade_unsupported(question, answer, max_points, options) -> GradeOutcome:
    return GradeOutcome(0, None, get_feedback("unsupported"))


QuestionGrader = Callable[[object, QuizAnswer, float, GradingOptions], GradeOutcome]

GRADERS: Dict[QuestionType, QuestionGrader] = {
    QuestionType.MULTIPLE_CHOICE: _grade_multiple_choice,
    QuestionType.CHOICE: _grade_choice,
    QuestionType.SHORT_ANSWER: _grade_short_answer,
    QuestionType.LONG_ANSWER: _grade_essay,
    QuestionType.ARTICLE: _grade_essay,
    QuestionType.FILL_IN_THE_BLANK: _grade_fill_in_the_blank,
    QuestionType.RANKING: _grade_ranking,
    QuestionType.SINGLE_SELECTION_MATRIX: _grade_matrix,
    QuestionType.MULTIPLE_SELECTION_MATRIX: _grade_matrix,
    QuestionType.WHITEBOARD: _grade_unsupported,
}

_missing_graders = set(QuestionType) - set(GRADERS)
if _missing_graders:
    raise RuntimeError(
        f"No grader registered for question types: {sorted(t.value for t in _missing_graders)}"
    )


# ============================================================================
# ENTRY POINT
# ============================================================================

def grade_question(
    question,
    answer: Optional[QuizAnswer],
    options: Optional[GradingOptions] = None,
) -> QuestionGradingResult:
    """
    Grades one question.

    Args:
        question: A validated question model.
        answer: The learner's stored answer, or None when none was given.
        options: Grading knobs (essay length threshold).

    Returns:
        QuestionGradingResult with points clamped into [0, max points].
    """
    options = options or GradingOptions()
    question_type = QuestionType(question.type)
    max_points = get_question_points(question)

    if answer is None:
        outcome = GradeOutcome(0, False, get_feedback("no_answer"))
    elif isinstance(question.scoring, RubricScoring):
        outcome = GradeOutcome(0, None, get_feedback("rubric"))
    else:
        try:
            outcome = GRADERS[question_type](question, answer, max_points, options)
        except InvalidArgumentError as e:
            logger.warning("Ungradable answer for question %s: %s", question.id, e)
            outcome = GradeOutcome(0, False, get_feedback("ungradable", reason=str(e)))

    feedback = outcome.feedback
    if answer is not None and question.feedback and outcome.is_correct is not True:
        feedback = f"{feedback} {question.feedback}"

    return QuestionGradingResult(
        question_id=question.id,
        question_text=question.prompt,
        question_type=question_type,
        points_earned=clamp_points(outcome.points, max_points),
        max_points=max_points,
        is_correct=outcome.is_correct,
        feedback=feedback,
        correct_answer=get_correct_answer_string(question),
        explanation=question.feedback,
    )
