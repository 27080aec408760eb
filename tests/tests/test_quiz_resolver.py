"""
Test Quiz Config Resolver
Tests flattening of quiz configurations and question lookup.
"""
import pytest

from grader.schemas import parse_quiz_config
from grader.services.quiz_resolver import (
    QuestionRef,
    extract_question_entries,
    extract_questions,
    find_question,
)


@pytest.fixture
def two_part_container(container_config):
    container_config["nestedQuizzes"].append({
        "id": "part-b",
        "title": "Part B",
        "pages": [
            {"id": "p1", "questions": [{"id": "q1", "type": "short-answer", "correctAnswer": "x"}]},
            {"id": "p2", "questions": [{"id": "q2", "type": "whiteboard"}]},
        ],
    })
    return parse_quiz_config(container_config)


def test_regular_questions_in_document_order(aggregate_config):
    """Test that pages and questions are flattened in order."""
    config = parse_quiz_config(aggregate_config)
    assert [q.id for q in extract_questions(config)] == ["q1", "q2", "q3", "q4"]


def test_container_questions_keep_nested_order(two_part_container):
    """Test that nested quizzes are flattened in order with compound refs."""
    entries = extract_question_entries(two_part_container)
    assert [str(entry.ref) for entry in entries] == ["part-a:q1", "part-b:q1", "part-b:q2"]


def test_find_regular_question(aggregate_config):
    config = parse_quiz_config(aggregate_config)
    assert find_question(config, "q3").correct_answer == "Paris"


def test_find_nested_question(two_part_container):
    """Test that the compound id picks the right nested quiz."""
    question = find_question(two_part_container, "part-b:q1")
    assert question.type == "short-answer"


@pytest.mark.parametrize("question_id", ["part-c:q1", "part-a:q9", "q1"])
def test_find_question_not_found(two_part_container, question_id):
    """Test that unknown ids return None instead of raising."""
    assert find_question(two_part_container, question_id) is None


def test_nested_id_on_regular_quiz(aggregate_config):
    config = parse_quiz_config(aggregate_config)
    assert find_question(config, "page-1:q1") is None


def test_question_ref_parse():
    """Test splitting compound ids on the last separator."""
    ref = QuestionRef.parse("quiz:a:q1")
    assert ref.nested_quiz_id == "quiz:a"
    assert ref.question_id == "q1"
    assert str(ref) == "quiz:a:q1"


@pytest.mark.parametrize("raw", ["q1", ":q1", "q1:"])
def test_question_ref_bare(raw):
    """Test that ids without two non-empty parts stay bare."""
    ref = QuestionRef.parse(raw)
    assert ref.is_nested is False
    assert ref.question_id == raw


def test_regular_question_id_with_separator():
    """Test that a regular quiz question whose id contains ':' is found by its full id."""
    config = parse_quiz_config({
        "version": "v2",
        "type": "regular",
        "id": "quiz-3",
        "title": "Sections",
        "pages": [{"id": "p1", "questions": [{"id": "sec:1", "type": "short-answer", "correctAnswer": "x"}]}],
    })
    assert find_question(config, "sec:1").correct_answer == "x"
    assert find_question(config, "1") is None
