"""
Error Types for the Grading Engine
Strict-tier conditions that must propagate to the caller.
"""


class GradingError(ValueError):
    """Base class for configuration and contract violations."""


class InvalidArgumentError(GradingError):
    """Raised when an input does not match the shape its question requires."""


class QuizConfigValidationError(GradingError):
    """Raised when a quiz configuration cannot be resolved to the latest version."""


class InvalidGradeValueError(GradingError):
    """Raised when a grade falls outside its gradebook item's bounds."""


class WeightExceedsLimitError(GradingError):
    """Raised when weights at one gradebook level do not add up."""


class WeightZeroRequiredError(GradingError):
    """Raised when a level without regular items carries a weight."""
