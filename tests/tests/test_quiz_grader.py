"""
Test Quiz Grading Engine
Tests the aggregation of per-question results into a quiz result.
"""
import pytest
from pydantic import ValidationError

from grader.services.quiz_grader import calculate_percentage, calculate_quiz_grade


def one_point_quiz():
    return {
        "version": "v2",
        "type": "regular",
        "id": "quiz-2",
        "title": "Three questions",
        "pages": [
            {
                "id": "p1",
                "questions": [
                    {"id": f"q{n}", "type": "short-answer", "correctAnswer": "yes"}
                    for n in range(1, 4)
                ],
            }
        ],
    }


def test_aggregate_example(quiz_result):
    """Test the four-question quiz: three correct plus a long essay."""
    assert quiz_result.total_score == 87
    assert quiz_result.max_score == 100
    assert quiz_result.percentage == 87
    assert "87/100 points (87%)" in quiz_result.feedback
    assert "3/4 questions correct" in quiz_result.feedback
    assert quiz_result.correct_count == 3


def test_results_follow_document_order(quiz_result):
    """Test that per-question results keep page and question order."""
    assert [r.question_id for r in quiz_result.question_results] == ["q1", "q2", "q3", "q4"]


def test_decimal_percentage(answer_factory):
    """Test that percentages round to two decimals."""
    answers = [
        answer_factory("q1", "short_answer", selected="yes"),
        answer_factory("q2", "short_answer", selected="yes"),
        answer_factory("q3", "short_answer", selected="no"),
    ]
    result = calculate_quiz_grade(one_point_quiz(), answers)
    assert result.total_score == 2
    assert result.max_score == 3
    assert result.percentage == 66.67


def test_container_quiz(container_config, answer_factory):
    """Test grading a container quiz through its compound question id."""
    result = calculate_quiz_grade(container_config, [answer_factory("part-a:q1", selected="a")])
    assert result.total_score == 50
    assert result.max_score == 50
    assert len(result.question_results) == 1


def test_container_quiz_bare_id(container_config, answer_factory):
    """Test that nested questions also match their bare id."""
    result = calculate_quiz_grade(container_config, [answer_factory("q1", selected="a")])
    assert result.total_score == 50


def test_empty_quiz():
    """Test that an empty quiz yields 0% rather than a division error."""
    config = {"version": "v2", "type": "regular", "id": "empty", "title": "Empty", "pages": []}
    result = calculate_quiz_grade(config, [])
    assert result.total_score == 0
    assert result.max_score == 0
    assert result.percentage == 0
    assert result.question_results == []


def test_missing_answers_never_raise():
    """Test that a quiz with no answers grades every question as unanswered."""
    result = calculate_quiz_grade(one_point_quiz(), [])
    assert result.total_score == 0
    assert all(r.feedback == "No answer provided" for r in result.question_results)


def test_first_matching_answer_wins(answer_factory):
    """Test that duplicate answers resolve to the first one."""
    answers = [
        answer_factory("q1", "short_answer", selected="yes"),
        answer_factory("q1", "short_answer", selected="no"),
    ]
    result = calculate_quiz_grade(one_point_quiz(), answers)
    assert result.question_results[0].is_correct is True


def test_grading_is_idempotent(aggregate_config, aggregate_answers):
    """Test that grading the same input twice gives the same result."""
    first = calculate_quiz_grade(aggregate_config, aggregate_answers)
    second = calculate_quiz_grade(aggregate_config, aggregate_answers)
    assert first == second


def test_passing_score(aggregate_config, aggregate_answers):
    """Test the pass flag against the configured passing score."""
    aggregate_config["grading"] = {"passingScore": 90}
    failed = calculate_quiz_grade(aggregate_config, aggregate_answers)
    aggregate_config["grading"] = {"passingScore": 87}
    passed = calculate_quiz_grade(aggregate_config, aggregate_answers)

    assert failed.passed is False
    assert passed.passed is True


def test_no_passing_score(quiz_result):
    """Test that passed stays unset without a passing score."""
    assert quiz_result.passed is None


def test_essay_threshold_override(aggregate_config, answer_factory):
    """Test that the essay threshold can be raised per call."""
    answers = [answer_factory("q4", "essay", selected="x" * 150)]
    result = calculate_quiz_grade(aggregate_config, answers, essay_min_length=200)
    assert result.question_results[3].points_earned == 0


def test_malformed_config_raises():
    """Test that a structurally invalid config is rejected."""
    with pytest.raises(ValidationError):
        calculate_quiz_grade({"type": "regular", "pages": "nope"}, [])


@pytest.mark.parametrize("total, maximum, expected", [(0, 0, 0), (1, 3, 33.33), (3, 3, 100), (1, 32, 3.13)])
def test_calculate_percentage(total, maximum, expected):
    assert calculate_percentage(total, maximum) == expected


def test_percentage_rounds_half_up(answer_factory):
    """Test that a half-way percentage rounds up (1/32 -> 3.13, not 3.12)."""
    config = one_point_quiz()
    config["pages"][0]["questions"] = [
        {"id": f"q{n}", "type": "short-answer", "correctAnswer": "yes"} for n in range(1, 33)
    ]
    result = calculate_quiz_grade(config, [answer_factory("q1", "short_answer", selected="yes")])
    assert result.total_score == 1
    assert result.max_score == 32
    assert result.percentage == 3.13
    assert "1/32 points (3.13%)" in result.feedback


def test_large_fractional_score_in_summary(answer_factory):
    """Test that the summary keeps both decimals of a five-digit score."""
    config = one_point_quiz()
    config["pages"][0]["questions"] = [{
        "id": "q1",
        "type": "short-answer",
        "correctAnswer": "yes",
        "scoring": {"type": "simple", "points": 12345.25},
    }]
    result = calculate_quiz_grade(config, [answer_factory("q1", "short_answer", selected="yes")])
    assert result.total_score == 12345.25
    assert "12345.25/12345.25 points (100%)" in result.feedback
