"""
Pytest Configuration & Shared Fixtures
"""
import pytest

from grader.schemas import GradebookSetupItem, QuizAnswer, parse_quiz_config
from grader.services.quiz_grader import calculate_quiz_grade


def make_answer(question_id, question_type="multiple_choice", selected=None, options=None):
    """Builds a stored answer; options are the keys marked as selected."""
    return QuizAnswer(
        question_id=question_id,
        question_type=question_type,
        selected_answer=selected,
        multiple_choice_answers=(
            [{"option": option, "isSelected": True} for option in options]
            if options is not None else None
        ),
    )


@pytest.fixture
def answer_factory():
    return make_answer


@pytest.fixture
def aggregate_config():
    """Four 25-point questions: MC, choice, short answer and a manual essay."""
    return {
        "version": "v2",
        "type": "regular",
        "id": "quiz-1",
        "title": "Midterm",
        "pages": [
            {
                "id": "page-1",
                "title": "Page 1",
                "questions": [
                    {
                        "id": "q1",
                        "type": "multiple-choice",
                        "prompt": "What is 2+2?",
                        "options": {"a": "3", "b": "4", "c": "5"},
                        "correctAnswer": "b",
                        "scoring": {"type": "simple", "points": 25},
                    },
                    {
                        "id": "q2",
                        "type": "choice",
                        "prompt": "Pick the primes",
                        "options": {"a": "2", "b": "3", "c": "4"},
                        "correctAnswers": ["a", "b"],
                        "scoring": {"type": "simple", "points": 25},
                    },
                ],
            },
            {
                "id": "page-2",
                "title": "Page 2",
                "questions": [
                    {
                        "id": "q3",
                        "type": "short-answer",
                        "prompt": "Capital of France?",
                        "correctAnswer": "Paris",
                        "scoring": {"type": "simple", "points": 25},
                    },
                    {
                        "id": "q4",
                        "type": "long-answer",
                        "prompt": "Discuss the French Revolution.",
                        "scoring": {"type": "manual", "maxPoints": 25},
                    },
                ],
            },
        ],
    }


@pytest.fixture
def aggregate_answers():
    return [
        make_answer("q1", selected="b"),
        make_answer("q2", options=["b", "a"]),
        make_answer("q3", "short_answer", selected="  paris "),
        make_answer("q4", "essay", selected="x" * 150),
    ]


@pytest.fixture
def container_config():
    """A container with one nested quiz holding one 50-point question."""
    return {
        "version": "v2",
        "type": "container",
        "id": "container-1",
        "title": "Final Exam",
        "nestedQuizzes": [
            {
                "id": "part-a",
                "title": "Part A",
                "pages": [
                    {
                        "id": "page-1",
                        "questions": [
                            {
                                "id": "q1",
                                "type": "multiple-choice",
                                "prompt": "Pick a",
                                "options": {"a": "A", "b": "B"},
                                "correctAnswer": "a",
                                "scoring": {"type": "simple", "points": 50},
                            }
                        ],
                    }
                ],
            }
        ],
    }


@pytest.fixture
def quiz_result(aggregate_config, aggregate_answers):
    """Graded result of the four-question quiz (87/100)."""
    return calculate_quiz_grade(parse_quiz_config(aggregate_config), aggregate_answers)


@pytest.fixture
def gradebook_tree():
    """Two categories plus a top-level extra-credit item."""
    return [
        GradebookSetupItem(
            id=1,
            type="category",
            name="Homework",
            weight=40,
            grade_items=[
                GradebookSetupItem(id=11, name="HW 1", weight=50, max_grade=10),
                GradebookSetupItem(id=12, name="HW 2", max_grade=10),
            ],
        ),
        GradebookSetupItem(
            id=2,
            type="category",
            name="Exams",
            grade_items=[
                GradebookSetupItem(id=21, name="Midterm", max_grade=100),
                GradebookSetupItem(id=22, name="Final", max_grade=100),
            ],
        ),
        GradebookSetupItem(id=3, name="Bonus Project", weight=5, extra_credit=True, max_grade=20),
    ]
