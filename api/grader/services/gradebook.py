"""
Gradebook Weighting Engine
Combines per-item grades (adjustments, overrides) into one weight-normalized course grade.
"""
from typing import Iterable, Optional, Union

from grader.config import round_half_up
from grader.errors import InvalidGradeValueError
from grader.log import get_logger
from grader.schemas import (
    FinalGradeResult,
    GradebookItem,
    GradeItemInput,
    QuizGradingResult,
)

logger = get_logger(__name__)


def effective_grade(item: GradeItemInput) -> Optional[float]:
    """
    Grade that counts for an item.

    An active, non-null override replaces the adjusted grade outright;
    otherwise active adjustments are added to the base grade. Returns None
    when the item has neither a base grade nor an active override.
    """
    if item.is_overridden and item.override_grade is not None:
        return item.override_grade
    if item.base_grade is None:
        return None
    return item.base_grade + sum(
        adjustment.points for adjustment in item.adjustments if adjustment.is_active
    )


def effective_weight(item: GradeItemInput) -> float:
    """Item weight rescaled by its category weight; missing weights count as 0."""
    item_weight = item.item_weight or 0
    if item.category_weight is not None:
        return (item_weight / 100) * item.category_weight
    return item_weight


def compute_final_grade(items: Iterable[Union[GradeItemInput, dict]]) -> FinalGradeResult:
    """
    Weighted average of every graded item.

    Items without a grade are skipped rather than counted as zero, and the
    sum is normalized by the total weight of the items that contributed, so
    weights need not add up to 100.

    Returns:
        FinalGradeResult whose final_grade is None when no graded, weighted
        work exists (distinct from a grade of 0).
    """
    total_weight = 0
    weighted_sum = 0
    graded_item_count = 0

    for raw in items:
        item = raw if isinstance(raw, GradeItemInput) else GradeItemInput.model_validate(raw)
        grade = effective_grade(item)
        if grade is None:
            continue

        graded_item_count += 1
        weight = effective_weight(item)
        total_weight += weight
        weighted_sum += grade * weight

    if graded_item_count == 0 or total_weight == 0:
        logger.debug("No weighted graded work (%d graded items)", graded_item_count)
        return FinalGradeResult(
            final_grade=None,
            total_weight=total_weight,
            graded_item_count=graded_item_count,
        )

    return FinalGradeResult(
        final_grade=round_half_up(weighted_sum / total_weight),
        total_weight=total_weight,
        graded_item_count=graded_item_count,
    )


def validate_grade_value(grade: Optional[float], item: GradebookItem) -> None:
    """
    Checks a grade against its item's bounds.

    Raises:
        InvalidGradeValueError: If grade is outside [min_grade, max_grade].
    """
    if grade is None:
        return
    if grade < item.min_grade or grade > item.max_grade:
        raise InvalidGradeValueError(
            f"Grade must be between {item.min_grade:g} and {item.max_grade:g}"
        )


def grade_input_from_quiz_result(
    result: QuizGradingResult,
    item: GradebookItem,
    category_weight: Optional[float] = None,
) -> GradeItemInput:
    """
    Turns a quiz grading result into the grade record for its gradebook item.

    The quiz total score becomes the base grade.

    Raises:
        InvalidGradeValueError: If the score falls outside the item's bounds.
    """
    validate_grade_value(result.total_score, item)
    return GradeItemInput(
        item_id=item.id,
        base_grade=result.total_score,
        item_weight=item.weight,
        category_weight=category_weight,
    )
