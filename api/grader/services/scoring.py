"""
Scoring Policy Helpers
Max points, per-type defaults and human-readable descriptions of scoring policies.
"""
from typing import Optional, assert_never

from grader.config import DEFAULT_QUESTION_POINTS
from grader.schemas import (
    ContainerQuizConfig,
    ManualScoring,
    MatrixScoring,
    NestedQuizConfig,
    PartialMatchScoring,
    QuestionType,
    RankingScoring,
    RegularQuizConfig,
    RubricScoring,
    SimpleScoring,
    WeightedScoring,
)


def get_scoring_max_points(scoring) -> float:
    """Maximum points a scoring policy can award."""
    if scoring is None:
        return DEFAULT_QUESTION_POINTS
    if isinstance(scoring, SimpleScoring):
        return scoring.points
    if isinstance(
        scoring,
        (ManualScoring, WeightedScoring, RankingScoring, MatrixScoring, RubricScoring, PartialMatchScoring),
    ):
        return scoring.max_points
    assert_never(scoring)


def get_question_points(question) -> float:
    """Maximum points for a question; 1 when it has no scoring policy."""
    return get_scoring_max_points(question.scoring)


def get_default_scoring(question_type: QuestionType):
    """
    Returns the scoring policy an editor assigns to a new question.

    Args:
        question_type: The question's type tag.

    Returns:
        A scoring policy model worth 1 point.
    """
    question_type = QuestionType(question_type)

    if question_type in (QuestionType.MULTIPLE_CHOICE, QuestionType.SHORT_ANSWER):
        return SimpleScoring(points=1)
    if question_type == QuestionType.CHOICE:
        return WeightedScoring(mode="all-or-nothing", max_points=1)
    if question_type == QuestionType.FILL_IN_THE_BLANK:
        return WeightedScoring(mode="partial-no-penalty", max_points=1, points_per_correct=1)
    if question_type == QuestionType.RANKING:
        return RankingScoring(mode="exact-order", max_points=1)
    if question_type in (
        QuestionType.SINGLE_SELECTION_MATRIX,
        QuestionType.MULTIPLE_SELECTION_MATRIX,
    ):
        return MatrixScoring(mode="partial", max_points=1, points_per_row=1)
    if question_type in (
        QuestionType.LONG_ANSWER,
        QuestionType.ARTICLE,
        QuestionType.WHITEBOARD,
    ):
        return ManualScoring(max_points=1)
    assert_never(question_type)


def format_points(value: float) -> str:
    """Render a point value to at most 2 decimals, without trailing zeros."""
    text = f"{value:.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def get_scoring_description(scoring: Optional[object] = None) -> str:
    """Describe a scoring policy for authors and learners."""
    if scoring is None:
        return "1 point"

    if isinstance(scoring, SimpleScoring):
        unit = "point" if scoring.points == 1 else "points"
        return f"{format_points(scoring.points)} {unit}"

    max_points = format_points(scoring.max_points)

    if isinstance(scoring, WeightedScoring):
        if scoring.mode == "all-or-nothing":
            return f"{max_points} points (all or nothing)"
        per_correct = format_points(scoring.points_per_correct or 0)
        if scoring.mode == "partial-with-penalty":
            penalty = format_points(scoring.penalty_per_incorrect or 0)
            return f"Up to {max_points} points ({per_correct} per correct, -{penalty} per incorrect)"
        return f"Up to {max_points} points ({per_correct} per correct, no penalty)"

    if isinstance(scoring, RubricScoring):
        return f"Up to {max_points} points (rubric-based)"

    if isinstance(scoring, ManualScoring):
        return f"Up to {max_points} points (manual grading)"

    if isinstance(scoring, PartialMatchScoring):
        sensitivity = "case-sensitive" if scoring.case_sensitive else "case-insensitive"
        threshold = round(scoring.match_threshold * 100)
        return f"Up to {max_points} points ({sensitivity}, {threshold}% match threshold)"

    if isinstance(scoring, RankingScoring):
        if scoring.mode == "exact-order":
            return f"{max_points} points (exact order required)"
        per_position = format_points(scoring.points_per_correct_position or 0)
        return f"Up to {max_points} points ({per_position} per correct position)"

    if isinstance(scoring, MatrixScoring):
        per_row = format_points(scoring.points_per_row)
        if scoring.mode == "all-or-nothing":
            return f"{max_points} points ({per_row} per row, all or nothing)"
        return f"Up to {max_points} points ({per_row} per row, partial credit)"

    assert_never(scoring)


def _pages_total(pages) -> float:
    return sum(
        get_question_points(question)
        for page in pages or []
        for question in page.questions or []
    )


def calculate_total_points(config) -> float:
    """Sum of max points across a regular, container or nested quiz."""
    if isinstance(config, ContainerQuizConfig):
        return sum(calculate_total_points(nested) for nested in config.nested_quizzes or [])
    if isinstance(config, (RegularQuizConfig, NestedQuizConfig)):
        return _pages_total(config.pages)
    return 0
