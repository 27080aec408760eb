"""
Configuration Module for the Quiz Grader
Centralizes environment variables, grading constants, and feedback templates.
"""
import os
from decimal import ROUND_HALF_UP, Decimal

from dotenv import load_dotenv

# --- Grading Constants ---
DEFAULT_QUESTION_POINTS = 1
ESSAY_PARTIAL_CREDIT_RATIO = 0.5
PERCENT_DECIMALS = 2

DEFAULT_ESSAY_MIN_LENGTH = 100
DEFAULT_LOG_LEVEL = "INFO"


def round_half_up(value: float, decimals: int = PERCENT_DECIMALS) -> float:
    """Rounds half-way values away from zero (3.125 -> 3.13), unlike round()."""
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def get_log_level() -> str:
    """
    Returns the log level configured for the grader.

    Reads GRADER_LOG_LEVEL from the environment (or a .env file).
    """
    load_dotenv()
    return os.getenv("GRADER_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()


def get_essay_min_length() -> int:
    """
    Returns the length an essay answer must exceed to earn partial credit.

    Raises:
        ValueError: If GRADER_ESSAY_MIN_LENGTH is set but not a non-negative integer.
    """
    load_dotenv()
    raw = os.getenv("GRADER_ESSAY_MIN_LENGTH")
    if raw is None or not raw.strip():
        return DEFAULT_ESSAY_MIN_LENGTH

    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"GRADER_ESSAY_MIN_LENGTH must be an integer, got '{raw}'."
        )
    if value < 0:
        raise ValueError("GRADER_ESSAY_MIN_LENGTH must not be negative.")
    return value


# --- Feedback Templates ---
FEEDBACK_TEMPLATES = {
    "correct": "Correct!",
    "no_answer": "No answer provided",
    "incorrect": "Incorrect. The correct answer is: {correct_answer}",
    "incorrect_multiple": "Incorrect. The correct answer(s) were: {correct_answer}",
    "incorrect_order": "Incorrect order. The correct order is: {correct_answer}",
    "partial": "Partially correct ({earned}/{max_points} points). The correct answer is: {correct_answer}",
    "essay_submitted": "Essay submitted. Manual grading required.",
    "essay_too_short": "Essay too short. Please provide a more detailed response.",
    "rubric": "Rubric grading required. Points will be assigned by an instructor.",
    "unsupported": "Question type not supported for automatic grading",
    "ungradable": "Answer could not be graded automatically: {reason}",
    "summary": (
        "Quiz completed! You scored {total_score}/{max_score} points ({percentage}%). "
        "You got {correct_count}/{total_questions} questions correct."
    ),
}


def get_feedback(kind: str, **kwargs) -> str:
    """
    Retrieves a formatted feedback message.

    Args:
        kind: Template name (e.g. "correct", "incorrect", "summary").
        **kwargs: Variables to format into the template.

    Returns:
        Formatted feedback string.

    Raises:
        KeyError: If kind is not found in templates.
    """
    if kind not in FEEDBACK_TEMPLATES:
        raise KeyError(f"Feedback template '{kind}' not found.")

    return FEEDBACK_TEMPLATES[kind].format(**kwargs)
