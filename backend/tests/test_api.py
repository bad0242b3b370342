"""
test_api.py
===========
Tests for the FastAPI backend.
Run with: pytest backend/tests/ -v
"""

import pytest
from fastapi.testclient import TestClient

from fakes import EVAL_FINDING, TEST_SETTINGS, make_docs_client, make_invoker, review_reply
from docreview.core.config import settings
from docreview.core.errors import ModelInvocationError
from docreview.main import app
from docreview.services.llm_service import ModelInvoker, detection_profile, review_profile
from docreview.services.review_pipeline import ReviewPipeline, get_review_pipeline

client = TestClient(app)

# Unhandled errors reach the app's catch-all handler instead of the test
quiet_client = TestClient(app, raise_server_exceptions=False)


def use_pipeline(pipeline: ReviewPipeline) -> ReviewPipeline:
    app.dependency_overrides[get_review_pipeline] = lambda: pipeline
    return pipeline


def scripted_pipeline(detection="None", review=None, review_error=None, docs=None):
    return use_pipeline(ReviewPipeline(
        detection_model=make_invoker(detection_profile(TEST_SETTINGS), detection),
        review_model=make_invoker(review_profile(TEST_SETTINGS), review, review_error),
        docs_client=make_docs_client(docs),
    ))


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


# ─── Health Tests ─────────────────────────────────────────────────────────────

def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


def test_health_check():
    """Health reports both model profiles and readiness."""
    scripted_pipeline()
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["model_configured"] is True
    assert data["detection_model"] == TEST_SETTINGS.DETECTION_MODEL
    assert data["review_model"] == TEST_SETTINGS.REVIEW_MODEL
    assert data["docs_authenticated"] is False
    assert "version" in data


def test_health_degraded_without_model_key():
    use_pipeline(ReviewPipeline(
        detection_model=ModelInvoker(detection_profile(), config=TEST_SETTINGS.model_copy(
            update={"OPENAI_API_KEY": None})),
        review_model=ModelInvoker(review_profile(), config=TEST_SETTINGS.model_copy(
            update={"OPENAI_API_KEY": None})),
        docs_client=make_docs_client(),
    ))
    data = client.get("/api/v1/health").json()
    assert data["status"] == "degraded"
    assert data["model_configured"] is False


# ─── Review Tests ─────────────────────────────────────────────────────────────

UNSAFE_JS_CODE = "eval(userInput)"

FLASK_CODE = '''
from flask import Flask, request

app = Flask(__name__)

@app.route("/run")
def run():
    return str(eval(request.args["expr"]))
'''


def test_review_basic():
    """Review endpoint should return the findings the model reported."""
    scripted_pipeline(review=review_reply([EVAL_FINDING]))
    response = client.post("/api/v1/review", json={
        "code": UNSAFE_JS_CODE,
        "language": "javascript"
    })
    assert response.status_code == 200
    data = response.json()

    assert data["success"] is True
    assert data["used_documentation"] is True
    assert data["language_detected"] == "javascript"
    assert data["frameworks"] == []
    assert data["findings"] == [EVAL_FINDING]


def test_review_no_issues():
    """An empty findings list is a successful review."""
    scripted_pipeline(review='{"findings": []}')
    response = client.post("/api/v1/review", json={"code": "x = 1", "language": "python"})
    assert response.status_code == 200
    assert response.json()["findings"] == []


def test_review_with_documentation():
    pipeline = scripted_pipeline(
        detection=["Python", "Flask"],
        review=review_reply([dict(EVAL_FINDING, line=8)]),
        docs={"Flask": "request.args is an ImmutableMultiDict"},
    )
    response = client.post("/api/v1/review", json={
        "code": FLASK_CODE,
        "language": "auto",
        "filename": "app.py"
    })
    assert response.status_code == 200
    data = response.json()
    assert data["language_detected"] == "Python"
    assert data["frameworks"] == ["Flask"]
    assert data["documentation_found"] is True
    assert data["findings"][0]["line"] == 8
    assert pipeline.review_model.invoke.call_args.args[1]["filename"] == "app.py"


def test_review_default_language_is_auto():
    pipeline = scripted_pipeline(detection=["Rust", "None"], review=review_reply([]))
    response = client.post("/api/v1/review", json={"code": "fn main() {}"})
    assert response.status_code == 200
    assert response.json()["language_detected"] == "Rust"
    assert pipeline.detection_model.invoke.call_count == 2


def test_review_empty_code():
    """Empty code should return 400 without touching the models."""
    pipeline = scripted_pipeline()
    response = client.post("/api/v1/review", json={
        "code": "",
        "language": "python"
    })
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Code is required"}
    assert pipeline.detection_model.invoke.call_count == 0
    assert pipeline.review_model.invoke.call_count == 0


def test_review_missing_code():
    scripted_pipeline()
    response = client.post("/api/v1/review", json={"language": "python"})
    assert response.status_code == 400


def test_review_null_code():
    """null code is treated like missing code."""
    pipeline = scripted_pipeline()
    response = client.post("/api/v1/review", json={"code": None, "language": "python"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Code is required"}
    assert pipeline.detection_model.invoke.call_count == 0


def test_review_code_too_long():
    """Code exceeding limit should return 413."""
    scripted_pipeline()
    long_code = "x = 1\n" * settings.MAX_CODE_LENGTH
    response = client.post("/api/v1/review", json={
        "code": long_code,
        "language": "python"
    })
    assert response.status_code == 413
    assert response.json()["success"] is False


def test_review_model_failure():
    """Review model errors become a 500 with a readable message."""
    scripted_pipeline(review_error=ModelInvocationError("[review] model call failed: timeout"))
    response = client.post("/api/v1/review", json={"code": UNSAFE_JS_CODE, "language": "javascript"})
    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"].startswith("Failed to analyze code")
    assert "findings" not in data


def test_review_invalid_model_output():
    """Schema violations never reach the client as findings."""
    scripted_pipeline(review=review_reply([dict(EVAL_FINDING, severity="bad")]))
    response = client.post("/api/v1/review", json={"code": UNSAFE_JS_CODE, "language": "javascript"})
    assert response.status_code == 500
    assert "findings" not in response.json()


def test_review_deeply_nested_model_output():
    """Output too deep to decode is an analysis failure, not a crash."""
    scripted_pipeline(review="[" * 100000 + "]" * 100000)
    response = client.post("/api/v1/review", json={"code": UNSAFE_JS_CODE, "language": "javascript"})
    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"].startswith("Failed to analyze code")


def test_review_unexpected_error_returns_json():
    """Errors outside the review error hierarchy still get the JSON error body."""
    scripted_pipeline(review_error=RuntimeError("socket exploded"))
    response = quiet_client.post("/api/v1/review", json={"code": UNSAFE_JS_CODE, "language": "javascript"})
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/json")
    assert response.json() == {"success": False, "error": "Review failed: socket exploded"}


def test_unknown_route_returns_json_error():
    response = client.get("/api/v1/nope")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


def test_wrong_method_returns_json_error():
    response = client.get("/api/v1/review")
    assert response.status_code == 405
    assert response.json()["success"] is False


def test_review_wrong_field_type():
    scripted_pipeline()
    response = client.post("/api/v1/review", json={"code": ["not", "text"]})
    assert response.status_code == 422
    assert response.json()["success"] is False


# ─── Auth Tests ───────────────────────────────────────────────────────────────

def test_api_key_required_when_configured(monkeypatch):
    scripted_pipeline(review=review_reply([]))
    monkeypatch.setattr(settings, "API_KEY", "server-key")

    response = client.post("/api/v1/review", json={"code": "x = 1"})
    assert response.status_code == 401

    response = client.post(
        "/api/v1/review", json={"code": "x = 1"}, headers={"X-API-Key": "server-key"}
    )
    assert response.status_code == 200


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
