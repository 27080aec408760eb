"""
Quiz Config Version Resolver
Upgrades stored quiz configurations of any known version to the canonical v2 shape.
"""
import re
from typing import Optional, Union

from pydantic import ValidationError

from grader.errors import QuizConfigValidationError
from grader.log import get_logger
from grader.schemas import ContainerQuizConfig, RegularQuizConfig, parse_quiz_config

logger = get_logger(__name__)

LATEST_VERSION = "v2"
BLANK_MARKER = re.compile(r"\{\{([^}]+)\}\}")


def blank_ids(prompt: Optional[str]) -> list:
    """Unique {{blank}} ids of a prompt in order of first appearance."""
    return list(dict.fromkeys(BLANK_MARKER.findall(prompt or "")))


def _upgrade_question(question: dict) -> dict:
    if question.get("type") != "fill-in-the-blank":
        return question
    answers = question.get("correctAnswers")
    if not isinstance(answers, list):
        return question
    # v1 lists answers positionally; v2 keys them by blank id.
    return {**question, "correctAnswers": dict(zip(blank_ids(question.get("prompt")), answers))}


def _upgrade_pages(pages) -> list:
    return [
        {**page, "questions": [_upgrade_question(q) for q in page.get("questions") or []]}
        for page in pages or []
    ]


def _upgrade_v1(config: dict) -> dict:
    common = {
        "version": LATEST_VERSION,
        "id": config["id"],
        "title": config["title"],
        "globalTimer": config.get("globalTimer"),
        "grading": config.get("grading"),
    }

    nested_quizzes = config.get("nestedQuizzes")
    if isinstance(nested_quizzes, list) and nested_quizzes:
        return {
            **common,
            "type": "container",
            "sequentialOrder": config.get("sequentialOrder", False),
            "nestedQuizzes": [
                {
                    "id": nested.get("id"),
                    "title": nested.get("title", ""),
                    "description": nested.get("description"),
                    "globalTimer": nested.get("globalTimer"),
                    "pages": _upgrade_pages(nested.get("pages")),
                }
                for nested in nested_quizzes
            ],
        }

    # A v1 document with neither pages nor nested quizzes becomes an empty regular quiz.
    return {**common, "type": "regular", "pages": _upgrade_pages(config.get("pages"))}


def resolve_quiz_config_to_latest(raw) -> Union[RegularQuizConfig, ContainerQuizConfig]:
    """
    Resolves a stored quiz configuration to a validated v2 config.

    Args:
        raw: A v1 document (no "version"), a v2 document, or an already
            validated config model.

    Returns:
        RegularQuizConfig or ContainerQuizConfig.

    Raises:
        QuizConfigValidationError: If the input is not an object, lacks id or
            title, or does not validate after upgrading.
    """
    if isinstance(raw, (RegularQuizConfig, ContainerQuizConfig)):
        return raw
    if not isinstance(raw, dict) or not raw:
        raise QuizConfigValidationError("Invalid quiz config: must be an object")
    if "id" not in raw or "title" not in raw:
        raise QuizConfigValidationError("Invalid quiz config: missing required fields (id, title)")

    document = raw
    if raw.get("version") != LATEST_VERSION:
        logger.info("Upgrading quiz config %s to %s", raw.get("id"), LATEST_VERSION)
        document = _upgrade_v1(raw)

    try:
        return parse_quiz_config(document)
    except ValidationError as e:
        raise QuizConfigValidationError(f"Invalid quiz config: {e}") from e


def is_valid_quiz_config(value) -> bool:
    """Cheap shape check: id and title strings plus a recognizable version layout."""
    if not isinstance(value, dict) or not value:
        return False
    if not isinstance(value.get("id"), str) or not isinstance(value.get("title"), str):
        return False

    if "version" in value:
        return value["version"] == LATEST_VERSION and value.get("type") in ("regular", "container")

    return isinstance(value.get("pages"), list) or isinstance(value.get("nestedQuizzes"), list)


def try_resolve_quiz_config_to_latest(raw) -> Optional[Union[RegularQuizConfig, ContainerQuizConfig]]:
    """Like resolve_quiz_config_to_latest, but returns None instead of raising."""
    if not is_valid_quiz_config(raw):
        return None
    try:
        return resolve_quiz_config_to_latest(raw)
    except QuizConfigValidationError as e:
        logger.warning("Could not resolve quiz config: %s", e)
        return None
