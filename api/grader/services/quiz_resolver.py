"""
Quiz Config Resolver
Flattens regular and container quiz configurations into an ordered question list
and resolves (possibly nested) question identifiers.
"""
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Union

from grader.schemas import (
    ContainerQuizConfig,
    QuizPage,
    RegularQuizConfig,
)

AnyQuizConfig = Union[RegularQuizConfig, ContainerQuizConfig]

NESTED_ID_SEPARATOR = ":"


@dataclass(frozen=True)
class QuestionRef:
    """
    Address of a question within a quiz configuration.

    A bare id addresses a question of a regular quiz; a nested ref
    ("<nestedQuizId>:<questionId>") addresses a question inside one
    nested quiz of a container.
    """
    question_id: str
    nested_quiz_id: Optional[str] = None

    @classmethod
    def parse(cls, raw: str) -> "QuestionRef":
        """Parse a storage identifier, splitting on the last separator."""
        nested_quiz_id, separator, question_id = raw.rpartition(NESTED_ID_SEPARATOR)
        if separator and nested_quiz_id and question_id:
            return cls(question_id=question_id, nested_quiz_id=nested_quiz_id)
        return cls(question_id=raw)

    @property
    def is_nested(self) -> bool:
        return self.nested_quiz_id is not None

    def __str__(self) -> str:
        if self.nested_quiz_id is None:
            return self.question_id
        return f"{self.nested_quiz_id}{NESTED_ID_SEPARATOR}{self.question_id}"


@dataclass(frozen=True)
class QuestionEntry:
    """A question together with the ref that addresses it."""
    ref: QuestionRef
    question: object


def _iter_page_questions(pages: Iterable[QuizPage]) -> Iterator:
    for page in pages or []:
        for question in page.questions or []:
            yield question


def extract_question_entries(config: AnyQuizConfig) -> List[QuestionEntry]:
    """
    Lists every question of a config in document order with its ref.

    Regular quizzes yield pages in order and questions within a page in
    order; container quizzes do the same for each nested quiz in order.
    """
    entries: List[QuestionEntry] = []

    if isinstance(config, RegularQuizConfig):
        for question in _iter_page_questions(config.pages):
            entries.append(QuestionEntry(QuestionRef(question.id), question))
    elif isinstance(config, ContainerQuizConfig):
        for nested in config.nested_quizzes or []:
            for question in _iter_page_questions(nested.pages):
                ref = QuestionRef(question.id, nested_quiz_id=nested.id)
                entries.append(QuestionEntry(ref, question))

    return entries


def extract_questions(config: AnyQuizConfig) -> list:
    """Returns every question of a config in document order."""
    return [entry.question for entry in extract_question_entries(config)]


def find_question(config: AnyQuizConfig, question_id: Union[str, QuestionRef]):
    """
    Finds a question by bare or nested identifier.

    Args:
        config: Canonical quiz configuration.
        question_id: "questionId", "nestedQuizId:questionId" or a parsed QuestionRef.

    Returns:
        The matching question, or None when the nested quiz or question does
        not exist. Never raises for unknown ids.
    """
    ref = question_id if isinstance(question_id, QuestionRef) else QuestionRef.parse(question_id)

    # Regular quizzes have no nested scope, so a ":" belongs to the bare id.
    if isinstance(config, RegularQuizConfig):
        return next(
            (q for q in _iter_page_questions(config.pages) if q.id == str(ref)),
            None,
        )

    if not ref.is_nested or not isinstance(config, ContainerQuizConfig):
        return None
    nested = next(
        (nq for nq in config.nested_quizzes or [] if nq.id == ref.nested_quiz_id),
        None,
    )
    if nested is None:
        return None

    for question in _iter_page_questions(nested.pages):
        if question.id == ref.question_id:
            return question
    return None
