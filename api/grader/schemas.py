"""
Data Schemas for the Quiz Grader
Pydantic models for quiz configurations, answers, grading results and gradebook records.

Wire documents use camelCase keys; every model accepts either spelling and
serializes by alias.
"""
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase documents."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QuestionType(str, Enum):
    """Closed set of question shapes."""
    MULTIPLE_CHOICE = "multiple-choice"
    CHOICE = "choice"
    SHORT_ANSWER = "short-answer"
    LONG_ANSWER = "long-answer"
    ARTICLE = "article"
    FILL_IN_THE_BLANK = "fill-in-the-blank"
    RANKING = "ranking"
    SINGLE_SELECTION_MATRIX = "single-selection-matrix"
    MULTIPLE_SELECTION_MATRIX = "multiple-selection-matrix"
    WHITEBOARD = "whiteboard"


class LegacyQuestionType(str, Enum):
    """Question type tags used by the flattened answer storage shape."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"
    FILL_BLANK = "fill_blank"


# ============================================================================
# SCORING POLICIES
# ============================================================================

class SimpleScoring(CamelModel):
    """Fixed points, all or nothing."""
    type: Literal["simple"] = "simple"
    points: float = Field(1, ge=0)


class ManualScoring(CamelModel):
    """Instructor assigns points; only heuristic credit is computed."""
    type: Literal["manual"] = "manual"
    max_points: float = Field(..., ge=0)


class WeightedScoring(CamelModel):
    """Per-item credit for multi-selection and fill-in-the-blank questions."""
    type: Literal["weighted"] = "weighted"
    mode: Literal["all-or-nothing", "partial-no-penalty", "partial-with-penalty"] = "all-or-nothing"
    max_points: float = Field(..., ge=0)
    points_per_correct: Optional[float] = Field(None, ge=0)
    penalty_per_incorrect: Optional[float] = Field(None, ge=0)


class RankingScoring(CamelModel):
    """Order-based scoring for ranking questions."""
    type: Literal["ranking"] = "ranking"
    mode: Literal["exact-order", "partial-order"] = "exact-order"
    max_points: float = Field(..., ge=0)
    points_per_correct_position: Optional[float] = Field(None, ge=0)


class MatrixScoring(CamelModel):
    """Row-based scoring for selection matrices."""
    type: Literal["matrix"] = "matrix"
    mode: Literal["partial", "all-or-nothing"] = "partial"
    max_points: float = Field(..., ge=0)
    points_per_row: float = Field(1, ge=0)


class RubricScoring(CamelModel):
    """Deferred to rubric-based manual grading."""
    type: Literal["rubric"] = "rubric"
    max_points: float = Field(..., ge=0)
    rubric_id: Optional[int] = None


class PartialMatchScoring(CamelModel):
    """Similarity-based credit for text answers."""
    type: Literal["partial-match"] = "partial-match"
    max_points: float = Field(..., ge=0)
    case_sensitive: bool = False
    match_threshold: float = Field(0.8, ge=0, le=1)


ScoringConfig = Annotated[
    Union[
        SimpleScoring,
        ManualScoring,
        WeightedScoring,
        RankingScoring,
        MatrixScoring,
        RubricScoring,
        PartialMatchScoring,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# QUESTIONS
# ============================================================================

class BaseQuestion(CamelModel):
    id: str
    prompt: str = ""
    feedback: Optional[str] = Field(None, description="Author feedback shown after answering")
    scoring: Optional[ScoringConfig] = None


class MultipleChoiceQuestion(BaseQuestion):
    type: Literal["multiple-choice"] = "multiple-choice"
    options: Dict[str, str] = Field(default_factory=dict)
    correct_answer: Optional[str] = None


class ChoiceQuestion(BaseQuestion):
    type: Literal["choice"] = "choice"
    options: Dict[str, str] = Field(default_factory=dict)
    correct_answers: List[str] = Field(default_factory=list)


class ShortAnswerQuestion(BaseQuestion):
    type: Literal["short-answer"] = "short-answer"
    correct_answer: Optional[str] = None


class LongAnswerQuestion(BaseQuestion):
    type: Literal["long-answer"] = "long-answer"
    correct_answer: Optional[str] = None


class ArticleQuestion(BaseQuestion):
    type: Literal["article"] = "article"


class FillInTheBlankQuestion(BaseQuestion):
    """Prompt carries {{blank_id}} markers; answers map blank id to value."""
    type: Literal["fill-in-the-blank"] = "fill-in-the-blank"
    correct_answers: Dict[str, str] = Field(default_factory=dict)


class RankingQuestion(BaseQuestion):
    type: Literal["ranking"] = "ranking"
    items: Dict[str, str] = Field(default_factory=dict)
    correct_order: List[str] = Field(default_factory=list)


class SingleSelectionMatrixQuestion(BaseQuestion):
    type: Literal["single-selection-matrix"] = "single-selection-matrix"
    rows: Dict[str, str] = Field(default_factory=dict)
    columns: Dict[str, str] = Field(default_factory=dict)
    correct_answers: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)


class MultipleSelectionMatrixQuestion(BaseQuestion):
    type: Literal["multiple-selection-matrix"] = "multiple-selection-matrix"
    rows: Dict[str, str] = Field(default_factory=dict)
    columns: Dict[str, str] = Field(default_factory=dict)
    correct_answers: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)


class WhiteboardQuestion(BaseQuestion):
    """Opaque drawing payload; never auto-graded."""
    type: Literal["whiteboard"] = "whiteboard"


Question = Annotated[
    Union[
        MultipleChoiceQuestion,
        ChoiceQuestion,
        ShortAnswerQuestion,
        LongAnswerQuestion,
        ArticleQuestion,
        FillInTheBlankQuestion,
        RankingQuestion,
        SingleSelectionMatrixQuestion,
        MultipleSelectionMatrixQuestion,
        WhiteboardQuestion,
    ],
    Field(discriminator="type"),
]


# ============================================================================
# QUIZ CONFIGURATION
# ============================================================================

class QuizPage(CamelModel):
    id: str
    title: str = ""
    questions: List[Question] = Field(default_factory=list)


class GradingConfig(CamelModel):
    enabled: bool = True
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    show_score_to_student: Optional[bool] = None
    show_correct_answers: Optional[bool] = None


class NestedQuizConfig(CamelModel):
    """A sub-quiz of a container; always has pages, never more nesting."""
    id: str
    title: str = ""
    description: Optional[str] = None
    pages: List[QuizPage] = Field(default_factory=list)
    global_timer: Optional[int] = Field(None, ge=0, description="Timer in seconds")


def _reject_key(data, keys, quiz_type: str):
    if isinstance(data, dict):
        for key in keys:
            if data.get(key) is not None:
                raise ValueError(f"A {quiz_type} quiz must not define '{key}'")
    return data


class RegularQuizConfig(CamelModel):
    version: Literal["v2"] = "v2"
    type: Literal["regular"] = "regular"
    id: str
    title: str = ""
    pages: List[QuizPage] = Field(default_factory=list)
    global_timer: Optional[int] = Field(None, ge=0)
    grading: Optional[GradingConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _pages_only(cls, data):
        return _reject_key(data, ("nestedQuizzes", "nested_quizzes"), "regular")


class ContainerQuizConfig(CamelModel):
    version: Literal["v2"] = "v2"
    type: Literal["container"] = "container"
    id: str
    title: str = ""
    nested_quizzes: List[NestedQuizConfig] = Field(default_factory=list)
    sequential_order: bool = False
    global_timer: Optional[int] = Field(None, ge=0)
    grading: Optional[GradingConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _nested_quizzes_only(cls, data):
        return _reject_key(data, ("pages",), "container")


QuizConfig = Annotated[
    Union[RegularQuizConfig, ContainerQuizConfig],
    Field(discriminator="type"),
]

_quiz_config_adapter = TypeAdapter(QuizConfig)
_question_adapter = TypeAdapter(Question)


def parse_quiz_config(data) -> Union[RegularQuizConfig, ContainerQuizConfig]:
    """Validate a canonical (v2) quiz configuration document."""
    if isinstance(data, (RegularQuizConfig, ContainerQuizConfig)):
        return data
    return _quiz_config_adapter.validate_python(data)


def parse_question(data):
    """Validate a single question document."""
    return _question_adapter.validate_python(data)


# ============================================================================
# ANSWERS
# ============================================================================

class MultipleChoiceSelection(CamelModel):
    option: str
    is_selected: bool = False


class QuizAnswer(CamelModel):
    """Flattened storage shape of one submitted answer."""
    question_id: str
    question_type: LegacyQuestionType
    question_text: Optional[str] = None
    selected_answer: Optional[str] = None
    multiple_choice_answers: Optional[List[MultipleChoiceSelection]] = None

    def selected_options(self) -> List[str]:
        """Option keys marked as selected, in submission order."""
        return [
            entry.option
            for entry in self.multiple_choice_answers or []
            if entry.is_selected
        ]


class MultipleChoiceAnswer(CamelModel):
    type: Literal["multiple-choice"] = "multiple-choice"
    value: str


class ShortAnswerAnswer(CamelModel):
    type: Literal["short-answer"] = "short-answer"
    value: str


class LongAnswerAnswer(CamelModel):
    type: Literal["long-answer"] = "long-answer"
    value: str


class ArticleAnswer(CamelModel):
    type: Literal["article"] = "article"
    value: str


class ChoiceAnswer(CamelModel):
    type: Literal["choice"] = "choice"
    value: List[str]


class RankingAnswer(CamelModel):
    type: Literal["ranking"] = "ranking"
    value: List[str]


class FillInTheBlankAnswer(CamelModel):
    type: Literal["fill-in-the-blank"] = "fill-in-the-blank"
    value: Dict[str, str]


class SingleSelectionMatrixAnswer(CamelModel):
    type: Literal["single-selection-matrix"] = "single-selection-matrix"
    value: Dict[str, str]


class MultipleSelectionMatrixAnswer(CamelModel):
    type: Literal["multiple-selection-matrix"] = "multiple-selection-matrix"
    value: Dict[str, Union[str, List[str]]]


class WhiteboardAnswer(CamelModel):
    type: Literal["whiteboard"] = "whiteboard"
    value: str


TypedQuestionAnswer = Annotated[
    Union[
        MultipleChoiceAnswer,
        ShortAnswerAnswer,
        LongAnswerAnswer,
        ArticleAnswer,
        ChoiceAnswer,
        RankingAnswer,
        FillInTheBlankAnswer,
        SingleSelectionMatrixAnswer,
        MultipleSelectionMatrixAnswer,
        WhiteboardAnswer,
    ],
    Field(discriminator="type"),
]

# Answers as the quiz-taking form holds them, keyed by question id.
QuestionAnswerValue = Union[str, List[str], Dict[str, Union[str, List[str]]]]


# ============================================================================
# GRADING RESULTS
# ============================================================================

class QuestionGradingResult(CamelModel):
    """Outcome of grading one question."""
    question_id: str
    question_text: str = ""
    question_type: QuestionType
    points_earned: float = Field(..., ge=0)
    max_points: float = Field(..., ge=0)
    is_correct: Optional[bool] = Field(
        ..., description="None when the question cannot be auto-graded"
    )
    feedback: str
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class QuizGradingResult(CamelModel):
    """Aggregate outcome of grading a whole quiz."""
    total_score: float
    max_score: float
    percentage: float
    question_results: List[QuestionGradingResult] = Field(default_factory=list)
    feedback: str
    passed: Optional[bool] = None

    @property
    def correct_count(self) -> int:
        return sum(1 for result in self.question_results if result.is_correct is True)


# ============================================================================
# GRADEBOOK
# ============================================================================

class AdjustmentType(str, Enum):
    BONUS = "bonus"
    PENALTY = "penalty"
    LATE_DEDUCTION = "late_deduction"
    PARTICIPATION = "participation"
    CURVE = "curve"
    OTHER = "other"


class GradeAdjustment(CamelModel):
    """A signed point delta applied to one learner's grade for one item."""
    type: AdjustmentType = AdjustmentType.OTHER
    points: float
    reason: str = ""
    is_active: bool = True


class GradeItemInput(CamelModel):
    """One learner's grade for one gradebook item, with the item's weighting."""
    item_id: Optional[str] = None
    base_grade: Optional[float] = None
    adjustments: List[GradeAdjustment] = Field(default_factory=list)
    is_overridden: bool = False
    override_grade: Optional[float] = None
    item_weight: Optional[float] = Field(None, description="Percent; None counts as 0")
    category_weight: Optional[float] = Field(None, description="Percent of the owning category")


class FinalGradeResult(CamelModel):
    final_grade: Optional[float] = Field(
        ..., description="None when no graded, weighted work exists"
    )
    total_weight: float
    graded_item_count: int


class GradebookItem(CamelModel):
    """Bounds and weight of a gradable unit of coursework."""
    id: str
    name: str = ""
    min_grade: float = 0
    max_grade: float = 100
    weight: Optional[float] = None
    category_id: Optional[str] = None


class GradebookSetupItem(CamelModel):
    """A node of the gradebook tree: a category or a leaf item."""
    id: Union[int, str]
    type: str = Field("manual_item", description="'category' or a leaf item kind")
    name: str = ""
    weight: Optional[float] = Field(None, description="None means auto-weighted")
    max_grade: Optional[float] = None
    extra_credit: bool = False
    grade_items: Optional[List["GradebookSetupItem"]] = None

    # Filled in by the weight calculations.
    adjusted_weight: Optional[float] = None
    overall_weight: Optional[float] = None
    weight_explanation: Optional[str] = None
    auto_weighted_zero: bool = False

    @property
    def is_category(self) -> bool:
        return self.type == "category"


class GradebookWeightTotals(CamelModel):
    base_total: float
    extra_credit_total: float
    calculated_total: float
    total_max_grade: float
    extra_credit_items: List[GradebookSetupItem] = Field(default_factory=list)
    extra_credit_categories: List[GradebookSetupItem] = Field(default_factory=list)
