"""
Test API Flow
Tests the Face: End-to-End Integration via FastAPI endpoints.
"""
from io import BytesIO

import pytest
from docx import Document
from fastapi.testclient import TestClient

import server.main
from server.main import app


client = TestClient(app)


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    """Redirect generated reports into a temporary directory."""
    monkeypatch.setattr(server.main, "get_runtime_output_dir", lambda: tmp_path)
    return tmp_path


@pytest.fixture
def stored_answers(aggregate_answers):
    return [answer.model_dump(by_alias=True) for answer in aggregate_answers]


def test_health_endpoint():
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root_endpoint():
    """Test that root endpoint serves JSON info."""
    response = client.get("/")
    assert response.status_code == 200
    assert "application/json" in response.headers.get("content-type", "")
    assert "message" in response.json()


def test_grade_quiz_endpoint(aggregate_config, stored_answers):
    """Test grading a quiz over HTTP."""
    response = client.post("/api/grade-quiz", json={"config": aggregate_config, "answers": stored_answers})

    assert response.status_code == 200
    body = response.json()
    assert body["totalScore"] == 87
    assert body["maxScore"] == 100
    assert len(body["questionResults"]) == 4
    assert body["questionResults"][3]["isCorrect"] is False


def test_grade_quiz_upgrades_v1_config(answer_factory):
    """Test that legacy configs are upgraded before grading."""
    config = {
        "id": "legacy",
        "title": "Legacy",
        "pages": [{"id": "p1", "questions": [
            {"id": "f1", "type": "fill-in-the-blank", "prompt": "{{a}}", "correctAnswers": ["x"]},
        ]}],
    }
    answer = answer_factory("f1", "fill_blank", selected='{"a": "x"}').model_dump(by_alias=True)
    response = client.post("/api/grade-quiz", json={"config": config, "answers": [answer]})

    assert response.status_code == 200
    assert response.json()["percentage"] == 100


def test_grade_quiz_invalid_config():
    """Test that a config without id/title is rejected with 422."""
    response = client.post("/api/grade-quiz", json={"config": {"pages": []}, "answers": []})
    assert response.status_code == 422


def test_final_grade_endpoint():
    response = client.post("/api/final-grade", json={"items": [
        {"baseGrade": 80, "itemWeight": 50},
        {"baseGrade": 90, "itemWeight": 50},
    ]})
    assert response.status_code == 200
    assert response.json()["finalGrade"] == 85


def test_final_grade_no_graded_work():
    response = client.post("/api/final-grade", json={"items": [{"itemWeight": 50}]})
    assert response.json()["finalGrade"] is None


def test_gradebook_weights_endpoint(gradebook_tree):
    payload = {"items": [item.model_dump(by_alias=True) for item in gradebook_tree]}
    response = client.post("/api/gradebook-weights", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["items"][1]["adjustedWeight"] == 60
    assert body["totals"]["calculatedTotal"] == pytest.approx(105)


def test_gradebook_weights_invalid():
    payload = {"items": [{"id": 1, "weight": 60}, {"id": 2, "weight": 30}]}
    response = client.post("/api/gradebook-weights", json=payload)
    assert response.status_code == 422


def test_render_report_endpoint(aggregate_config, stored_answers, output_dir):
    """Test that the rendered report comes back as a DOCX file."""
    response = client.post("/api/render-report", json={
        "config": aggregate_config,
        "answers": stored_answers,
        "learnerName": "Alex",
    })

    assert response.status_code == 200
    assert "wordprocessingml" in response.headers["content-type"]
    doc = Document(BytesIO(response.content))
    assert any("87/100" in para.text for para in doc.paragraphs)


def test_render_gradebook_and_download(gradebook_tree, output_dir):
    """Test rendering a gradebook report and downloading it by name."""
    payload = {"items": [item.model_dump(by_alias=True) for item in gradebook_tree]}
    response = client.post("/api/render-gradebook", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert (output_dir / body["filename"]).exists()

    download = client.get(body["download_url"])
    assert download.status_code == 200


def test_download_missing_file(output_dir):
    response = client.get("/download/missing.docx")
    assert response.status_code == 404


def test_serverless_entrypoint_exposes_app():
    """Test that the serverless entrypoint serves the same app."""
    from index import app as serverless_app
    assert serverless_app is app
