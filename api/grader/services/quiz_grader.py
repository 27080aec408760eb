"""
Quiz Grading Engine
Grades every question of a quiz configuration and aggregates the result.
"""
from typing import Iterable, List, Optional, Union

from grader.config import get_feedback, round_half_up
from grader.log import get_logger
from grader.schemas import QuizAnswer, QuizGradingResult, parse_quiz_config
from grader.services.question_grader import GradingOptions, grade_question
from grader.services.quiz_resolver import QuestionEntry, extract_question_entries
from grader.services.scoring import format_points

logger = get_logger(__name__)


def calculate_percentage(total_score: float, max_score: float) -> float:
    """Score as a percentage rounded to 2 decimals; 0 for an empty quiz."""
    if max_score <= 0:
        return 0
    return round_half_up(total_score / max_score * 100)


def find_answer(entry: QuestionEntry, answers: List[QuizAnswer]) -> Optional[QuizAnswer]:
    """
    First answer addressed to a question.

    Nested questions match either their compound id or their bare id.
    """
    keys = {str(entry.ref), entry.ref.question_id}
    return next((answer for answer in answers if answer.question_id in keys), None)


def build_summary(total_score: float, max_score: float, percentage: float,
                  correct_count: int, total_questions: int) -> str:
    return get_feedback(
        "summary",
        total_score=format_points(total_score),
        max_score=format_points(max_score),
        percentage=format_points(percentage),
        correct_count=correct_count,
        total_questions=total_questions,
    )


def calculate_quiz_grade(
    config,
    answers: Iterable[Union[QuizAnswer, dict]],
    essay_min_length: Optional[int] = None,
) -> QuizGradingResult:
    """
    Grades a learner's answers against a quiz configuration.

    Args:
        config: Canonical quiz configuration (model or raw v2 document).
        answers: Stored answers (models or raw documents).
        essay_min_length: Override of the essay partial-credit threshold.

    Returns:
        QuizGradingResult with per-question results and a summary.

    Raises:
        pydantic.ValidationError: If a raw config or answer is structurally malformed.
    """
    config = parse_quiz_config(config)
    answer_list = [
        answer if isinstance(answer, QuizAnswer) else QuizAnswer.model_validate(answer)
        for answer in answers
    ]
    options = GradingOptions() if essay_min_length is None else GradingOptions(essay_min_length)

    entries = extract_question_entries(config)
    logger.debug("Grading quiz %s: %d questions, %d answers", config.id, len(entries), len(answer_list))

    total_score = 0
    max_score = 0
    question_results = []

    for entry in entries:
        result = grade_question(entry.question, find_answer(entry, answer_list), options)
        question_results.append(result)
        total_score += result.points_earned
        max_score += result.max_points

    total_score = round_half_up(total_score)
    percentage = calculate_percentage(total_score, max_score)
    correct_count = sum(1 for result in question_results if result.is_correct is True)

    passed = None
    if config.grading is not None and config.grading.passing_score is not None:
        passed = percentage >= config.grading.passing_score

    logger.info(
        "Graded quiz %s: %s/%s points (%s%%)",
        config.id, format_points(total_score), format_points(max_score), format_points(percentage),
    )

    return QuizGradingResult(
        total_score=total_score,
        max_score=max_score,
        percentage=percentage,
        question_results=question_results,
        feedback=build_summary(total_score, max_score, percentage, correct_count, len(question_results)),
        passed=passed,
    )
