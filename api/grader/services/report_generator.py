"""
Report Generator Service
Renders quiz grading results and gradebook weight breakdowns as .docx files.
"""
from typing import Optional, Sequence

from docx import Document
from docx.shared import Inches, Pt

from grader.log import get_logger
from grader.schemas import GradebookSetupItem, GradebookWeightTotals, QuizGradingResult
from grader.services.scoring import format_points

logger = get_logger(__name__)

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _new_document(title: str, subject: Optional[str] = None) -> Document:
    doc = Document()

    core_properties = doc.core_properties
    core_properties.title = title
    if subject:
        core_properties.subject = subject

    style = doc.styles['Normal']
    style.font.size = Pt(12)

    heading = doc.add_heading(title, 0)
    heading.alignment = 1  # Center
    return doc


def _status_label(is_correct: Optional[bool]) -> str:
    if is_correct is None:
        return "Needs review"
    return "Correct" if is_correct else "Incorrect"


def generate_quiz_report_docx(
    result: QuizGradingResult,
    output_path: str,
    title: str = "Quiz Result",
    learner_name: Optional[str] = None,
) -> None:
    """
    Generates a .docx report from a quiz grading result.

    Args:
        result: Result returned by calculate_quiz_grade.
        output_path: Path where the .docx file should be saved.
        title: Heading of the report.
        learner_name: Optional learner shown in the info line.
    """
    logger.info("Generating quiz report at %s", output_path)
    doc = _new_document(title, subject="Quiz Result")

    p_info = doc.add_paragraph()
    p_info.alignment = 1  # Center
    if learner_name:
        p_info.add_run(f"Learner: {learner_name}").bold = True
        p_info.add_run(" | ")
    p_info.add_run(
        f"Score: {format_points(result.total_score)}/{format_points(result.max_score)}"
        f" ({format_points(result.percentage)}%)"
    )
    if result.passed is not None:
        p_info.add_run(" | Passed" if result.passed else " | Not passed").bold = True

    doc.add_paragraph("_" * 50).alignment = 1  # Divider

    for index, question in enumerate(result.question_results, start=1):
        p = doc.add_paragraph()
        p.paragraph_format.space_before = Pt(12)
        run = p.add_run(f"{index}. {question.question_text or question.question_id}")
        run.bold = True

        p_points = doc.add_paragraph()
        p_points.paragraph_format.left_indent = Inches(0.5)
        p_points.add_run(
            f"{format_points(question.points_earned)}/{format_points(question.max_points)} points"
            f" ({_status_label(question.is_correct)})"
        )

        p_feedback = doc.add_paragraph()
        p_feedback.paragraph_format.left_indent = Inches(0.5)
        p_feedback.add_run(question.feedback).italic = True

    doc.add_paragraph(result.feedback)

    doc.add_page_break()
    doc.add_heading("Answer Key", level=1)

    table = doc.add_table(rows=1, cols=3)
    table.style = 'Table Grid'
    hdr_cells = table.rows[0].cells
    hdr_cells[0].text = 'No.'
    hdr_cells[1].text = 'Correct Answer'
    hdr_cells[2].text = 'Points'

    for index, question in enumerate(result.question_results, start=1):
        row_cells = table.add_row().cells
        row_cells[0].text = str(index)
        row_cells[1].text = question.correct_answer or "-"
        row_cells[2].text = (
            f"{format_points(question.points_earned)}/{format_points(question.max_points)}"
        )

    doc.save(output_path)


def _flatten(items: Sequence[GradebookSetupItem], depth: int = 0):
    for item in items:
        yield item, depth
        if item.is_category:
            yield from _flatten(item.grade_items or [], depth + 1)


def _format_weight(weight: Optional[float]) -> str:
    return "-" if weight is None else f"{weight:.2f}%"


def generate_gradebook_report_docx(
    items: Sequence[GradebookSetupItem],
    totals: GradebookWeightTotals,
    output_path: str,
    title: str = "Gradebook Weights",
    course_name: Optional[str] = None,
) -> None:
    """
    Generates a .docx breakdown of a gradebook's weights.

    Args:
        items: Gradebook tree processed by calculate_adjusted_weights and
            calculate_overall_weights.
        totals: Totals returned by calculate_overall_weights.
        output_path: Path where the .docx file should be saved.
    """
    logger.info("Generating gradebook report at %s", output_path)
    doc = _new_document(title, subject=course_name)

    p_info = doc.add_paragraph()
    p_info.alignment = 1  # Center
    if course_name:
        p_info.add_run(f"Course: {course_name}").bold = True
        p_info.add_run(" | ")
    p_info.add_run(f"Total: {totals.calculated_total:.2f}%")
    if totals.extra_credit_total:
        p_info.add_run(f" (includes {totals.extra_credit_total:.2f}% extra credit)")

    doc.add_paragraph("_" * 50).alignment = 1  # Divider

    table = doc.add_table(rows=1, cols=4)
    table.style = 'Table Grid'
    hdr_cells = table.rows[0].cells
    hdr_cells[0].text = 'Item'
    hdr_cells[1].text = 'Weight'
    hdr_cells[2].text = 'Overall'
    hdr_cells[3].text = 'Calculation'

    for item, depth in _flatten(items):
        row_cells = table.add_row().cells
        name = "    " * depth + item.name
        if item.extra_credit:
            name += " (extra credit)"
        row_cells[0].text = name
        row_cells[1].text = _format_weight(item.adjusted_weight)
        row_cells[2].text = "" if item.is_category else _format_weight(item.overall_weight)
        row_cells[3].text = item.weight_explanation or ""

    doc.save(output_path)
