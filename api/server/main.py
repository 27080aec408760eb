"""
Main FastAPI Application
Controller layer exposing the grading and gradebook engines over HTTP.
"""
import os
import tempfile
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import ValidationError

from grader.config import get_essay_min_length, get_log_level
from grader.errors import GradingError
from grader.log import configure_logging, get_logger
from grader.services.gradebook import compute_final_grade
from grader.services.gradebook_weights import (
    calculate_adjusted_weights,
    calculate_overall_weights,
    validate_gradebook_weights,
)
from grader.services.quiz_grader import calculate_quiz_grade
from grader.services.report_generator import (
    DOCX_MEDIA_TYPE,
    generate_gradebook_report_docx,
    generate_quiz_report_docx,
)
from grader.services.version_resolver import resolve_quiz_config_to_latest
from server.schemas import (
    FinalGradeRequest,
    GradebookWeightsRequest,
    GradeQuizRequest,
    RenderGradebookRequest,
    RenderReportRequest,
)

configure_logging(get_log_level())
logger = get_logger(__name__)

# Setup Paths
BASE_DIR = Path(__file__).resolve().parents[2]
OUTPUT_DIR = BASE_DIR / "output"


def get_runtime_output_dir() -> Path:
    """Resolve output directory for local dev or serverless runtime."""
    if os.getenv("VERCEL"):
        return Path(tempfile.gettempdir()) / "quiz-grader-output"
    return OUTPUT_DIR


def new_report_path(prefix: str) -> Path:
    output_dir = get_runtime_output_dir()
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / f"{prefix}_{os.urandom(4).hex()}.docx"


# Initialize FastAPI App
app = FastAPI(
    title="Quiz Grader API",
    description="Automatic quiz grading and weighted gradebook rollups",
    version="1.0.0"
)

# CORS Middleware (Allow all origins for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def read_root():
    """Return API status info."""
    return {"message": "Quiz Grader API is running."}


def grade_request(request: GradeQuizRequest):
    """Resolve the config and grade the answers, mapping contract errors to 422."""
    try:
        config = resolve_quiz_config_to_latest(request.config)
        return calculate_quiz_grade(config, request.answers, essay_min_length=get_essay_min_length())
    except (GradingError, ValidationError) as e:
        logger.warning("Rejected grading request: %s", e)
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/api/grade-quiz")
async def grade_quiz(request: GradeQuizRequest):
    """
    Grade one learner's answers against a quiz configuration.

    Returns:
        The quiz grading result (camelCase).
    """
    result = grade_request(request)
    return result.model_dump(by_alias=True)


@app.post("/api/final-grade")
async def final_grade(request: FinalGradeRequest):
    """Weighted course grade from one learner's item grades."""
    result = compute_final_grade(request.items)
    return result.model_dump(by_alias=True)


@app.post("/api/gradebook-weights")
async def gradebook_weights(request: GradebookWeightsRequest):
    """Validate a gradebook tree and resolve its adjusted and overall weights."""
    try:
        validate_gradebook_weights(request.items)
    except GradingError as e:
        raise HTTPException(status_code=422, detail=str(e))

    items = calculate_adjusted_weights(request.items)
    totals = calculate_overall_weights(items)
    return {
        "items": [item.model_dump(by_alias=True) for item in items],
        "totals": totals.model_dump(by_alias=True),
    }


@app.post("/api/render-report")
async def render_report(request: RenderReportRequest):
    """Grade the answers, render the result as DOCX and return the file."""
    result = grade_request(request)
    output_path = new_report_path("quiz_report")
    generate_quiz_report_docx(
        result, str(output_path), title=request.title, learner_name=request.learner_name
    )

    return FileResponse(
        str(output_path),
        filename=output_path.name,
        media_type=DOCX_MEDIA_TYPE,
    )


@app.post("/api/render-gradebook")
async def render_gradebook(request: RenderGradebookRequest):
    """Render a gradebook weight breakdown as DOCX and return its download URL."""
    items = calculate_adjusted_weights(request.items)
    totals = calculate_overall_weights(items)
    output_path = new_report_path("gradebook")
    generate_gradebook_report_docx(
        items, totals, str(output_path), title=request.title, course_name=request.course_name
    )

    return {
        "status": "success",
        "filename": output_path.name,
        "download_url": f"/download/{output_path.name}",
    }


@app.get("/download/{filename}")
async def download_file(filename: str):
    """
    Download a generated report.

    Args:
        filename: Name of the file to download.

    Returns:
        File response with the .docx file.
    """
    file_path = get_runtime_output_dir() / Path(filename).name

    if not file_path.exists():
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(
        str(file_path),
        filename=filename,
        media_type=DOCX_MEDIA_TYPE,
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "Quiz Grader API"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
