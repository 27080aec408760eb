"""
Request Schemas for the Grader API
Pydantic models for request bodies accepted by the HTTP adapter.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field

from grader.schemas import CamelModel, GradebookSetupItem, GradeItemInput, QuizAnswer


class GradeQuizRequest(CamelModel):
    """A quiz configuration (any known version) and one learner's stored answers."""
    config: Dict[str, Any] = Field(..., description="Quiz configuration document")
    answers: List[QuizAnswer] = Field(default_factory=list, description="Stored answers")


class FinalGradeRequest(CamelModel):
    items: List[GradeItemInput] = Field(default_factory=list, description="One learner's item grades")


class GradebookWeightsRequest(CamelModel):
    items: List[GradebookSetupItem] = Field(..., description="Top-level gradebook items and categories")


class RenderReportRequest(GradeQuizRequest):
    """Grades the answers, then renders the result as a .docx report."""
    title: str = Field("Quiz Result", description="Report heading")
    learner_name: Optional[str] = Field(None, description="Learner shown in the report")


class RenderGradebookRequest(GradebookWeightsRequest):
    title: str = Field("Gradebook Weights", description="Report heading")
    course_name: Optional[str] = Field(None, description="Course shown in the report")
