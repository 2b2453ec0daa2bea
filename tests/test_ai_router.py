import asyncio
import io

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, patch

from app.main import app
from app.models.schemas import ScreeningOutcome

client = TestClient(app)

HR = {"X-User-Id": "hr_1", "X-User-Name": "Efua", "X-User-Role": "hr"}
EMPLOYEE = {"X-User-Id": "e1", "X-User-Role": "employee"}

JOB = {
    "job_id": "job1",
    "title": "Backend Engineer",
    "skills": [{"name": "Python", "level": "intermediate", "mandatory": True}, {"name": "Docker"}],
    "experience_level": "mid",
    "ai_criteria": {"minimum_score": 50, "keyword_weights": [{"keyword": "api"}]},
}

RESUME = (
    b"Backend developer at Acme Ltd for 4 years building API services.\n"
    b"Python and Docker daily.\n"
    b"BSc Computer Science, Accra University, 2016."
)


class TestAnalyzeResume:

    @patch("app.routers.ai.get_job_posting", new_callable=AsyncMock)
    def test_scores_uploaded_resume(self, mock_get_job):
        mock_get_job.return_value = JOB

        response = client.post(
            "/api/ai/analyze-resume",
            files={"resume": ("cv.txt", io.BytesIO(RESUME), "text/plain")},
            data={"job_id": "job1"},
            headers=HR,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        analysis = body["data"]["analysis"]
        assert analysis["skills_match"] == 1.0
        assert 0 <= analysis["overall_score"] <= 100
        assert body["data"]["recommendation"] == "shortlist"
        mock_get_job.assert_awaited_once_with("job1")

    @patch("app.routers.ai.get_job_posting", new_callable=AsyncMock)
    def test_upload_is_parsed_off_the_event_loop(self, mock_get_job):
        mock_get_job.return_value = JOB
        loops = []

        def parse(filename, content_type, data):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return RESUME.decode()

        with patch("app.routers.ai.extract_upload_text", side_effect=parse):
            response = client.post(
                "/api/ai/analyze-resume",
                files={"resume": ("cv.txt", io.BytesIO(RESUME), "text/plain")},
                data={"job_id": "job1"},
                headers=HR,
            )

        assert response.status_code == 200
        assert loops == [None]

    @patch("app.routers.ai.get_job_posting", new_callable=AsyncMock)
    def test_bad_stored_minimum_score(self, mock_get_job):
        mock_get_job.return_value = {**JOB, "ai_criteria": {"minimum_score": 65.5}}
        response = client.post(
            "/api/ai/analyze-resume",
            files={"resume": ("cv.txt", io.BytesIO(RESUME), "text/plain")},
            data={"job_id": "job1"},
            headers=HR,
        )
        assert response.status_code == 400
        assert "job1" in response.json()["message"]

    @patch("app.routers.ai.get_job_posting", new_callable=AsyncMock)
    def test_unknown_job(self, mock_get_job):
        mock_get_job.return_value = None
        response = client.post(
            "/api/ai/analyze-resume",
            files={"resume": ("cv.txt", io.BytesIO(RESUME), "text/plain")},
            data={"job_id": "nope"},
            headers=HR,
        )
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_rejects_unsupported_file(self):
        response = client.post(
            "/api/ai/analyze-resume",
            files={"resume": ("cv.png", io.BytesIO(b"\x89PNG"), "image/png")},
            data={"job_id": "job1"},
            headers=HR,
        )
        assert response.status_code == 400

    def test_requires_identity(self):
        response = client.post(
            "/api/ai/analyze-resume",
            files={"resume": ("cv.txt", io.BytesIO(RESUME), "text/plain")},
            data={"job_id": "job1"},
        )
        assert response.status_code == 401

    def test_employee_lacks_permission(self):
        response = client.post(
            "/api/ai/analyze-resume",
            files={"resume": ("cv.txt", io.BytesIO(RESUME), "text/plain")},
            data={"job_id": "job1"},
            headers=EMPLOYEE,
        )
        assert response.status_code == 403


class TestScreenApplications:

    @patch("app.routers.ai.save_application_analysis", new_callable=AsyncMock)
    @patch("app.routers.ai.get_applications", new_callable=AsyncMock)
    @patch("app.routers.ai.get_job_posting", new_callable=AsyncMock)
    def test_screens_and_stores(self, mock_get_job, mock_get_apps, mock_save):
        mock_get_job.return_value = JOB
        mock_get_apps.return_value = [
            {"application_id": "a1", "candidate": {"full_name": "Kwame Asante", "summary": "Python and Docker API engineer."}},
            {"application_id": "a2", "candidate": {"full_name": "Yaa Boakye", "summary": "Retail supervisor."}},
        ]

        response = client.post(
            "/api/ai/screen-applications",
            json={"job_id": "job1", "application_ids": ["a1", "a2", "a3"]},
            headers=HR,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 2
        assert [r["application_id"] for r in data["results"]] == ["a1", "a2"]
        assert data["not_found"] == ["a3"]
        assert data["not_saved"] == []
        assert mock_save.await_count == 2
        assert set(data["results"][0]) == set(ScreeningOutcome.model_fields)

    @patch("app.routers.ai.get_applications", new_callable=AsyncMock)
    @patch("app.routers.ai.get_job_posting", new_callable=AsyncMock)
    def test_no_applications(self, mock_get_job, mock_get_apps):
        mock_get_job.return_value = JOB
        mock_get_apps.return_value = []
        response = client.post(
            "/api/ai/screen-applications",
            json={"job_id": "job1", "application_ids": ["a1"]},
            headers=HR,
        )
        assert response.status_code == 404

    def test_empty_id_list_rejected(self):
        response = client.post("/api/ai/screen-applications", json={"job_id": "job1", "application_ids": []}, headers=HR)
        assert response.status_code == 422


class TestSkillGaps:

    @patch("app.routers.ai.save_employee_insights", new_callable=AsyncMock)
    @patch("app.routers.ai.find_similar_jobs", new_callable=AsyncMock)
    @patch("app.routers.ai.get_employee", new_callable=AsyncMock)
    def test_role_title(self, mock_get_employee, mock_find_jobs, mock_save):
        mock_get_employee.return_value = {"employee_id": "e1", "skills": [{"name": "Python", "level": "beginner"}]}
        mock_find_jobs.return_value = [
            {"title": "Senior Backend Engineer", "skills": [{"name": "Python", "level": "advanced"}, {"name": "AWS"}]},
            {"title": "Backend Engineer", "skills": [{"name": "python", "level": "advanced"}, {"name": "AWS"}]},
        ]

        response = client.post("/api/ai/analyze-skill-gaps", json={"employee_id": "e1", "target_role": "Backend Engineer"}, headers=EMPLOYEE)

        assert response.status_code == 200
        analysis = response.json()["data"]["analysis"]
        assert [g["skill"] for g in analysis["gaps"]] == ["Python", "AWS"]
        assert analysis["timeline_months"] == 12
        mock_save.assert_awaited_once()

    @patch("app.routers.ai.save_employee_insights", new_callable=AsyncMock)
    @patch("app.routers.ai.get_employee", new_callable=AsyncMock)
    def test_explicit_requirements(self, mock_get_employee, mock_save):
        mock_get_employee.return_value = {"employee_id": "e1", "skills": []}
        payload = {
            "employee_id": "e1",
            "target_role": {"title": "Data Engineer", "skills": [{"name": "SQL", "level": "advanced", "importance": "high"}]},
        }
        response = client.post("/api/ai/analyze-skill-gaps", json=payload, headers=HR)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["target_role"] == "Data Engineer"
        assert data["analysis"]["recommendations"][0]["action"] == "Start learning SQL fundamentals"

    @patch("app.routers.ai.find_similar_jobs", new_callable=AsyncMock)
    @patch("app.routers.ai.get_employee", new_callable=AsyncMock)
    def test_unknown_role(self, mock_get_employee, mock_find_jobs):
        mock_get_employee.return_value = {"employee_id": "e1", "skills": []}
        mock_find_jobs.return_value = []
        response = client.post("/api/ai/analyze-skill-gaps", json={"employee_id": "e1", "target_role": "Astronaut"}, headers=EMPLOYEE)
        assert response.status_code == 404

    def test_other_employee_needs_permission(self):
        response = client.post("/api/ai/analyze-skill-gaps", json={"employee_id": "e2", "target_role": "Engineer"}, headers=EMPLOYEE)
        assert response.status_code == 403


class TestOtherEndpoints:

    def test_sentiment(self):
        response = client.post("/api/ai/sentiment-analysis", json={"text": "Great, excellent support", "context": "survey"}, headers=HR)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["sentiment"] == "positive"
        assert data["context"] == "survey"

    @patch("app.routers.ai.save_employee_insights", new_callable=AsyncMock)
    @patch("app.routers.ai.get_employee", new_callable=AsyncMock)
    def test_predict_performance(self, mock_get_employee, mock_save):
        mock_get_employee.return_value = {"employee_id": "e1", "years_of_experience": 5, "performance": {"rating": 4}}
        response = client.post("/api/ai/predict-performance", json={"employee_id": "e1"}, headers=EMPLOYEE)
        assert response.status_code == 200
        prediction = response.json()["data"]["prediction"]
        assert 0 <= prediction["score"] <= 100
        assert prediction["confidence"] > 0

    @patch("app.routers.ai.get_employee", new_callable=AsyncMock)
    def test_predict_unknown_employee(self, mock_get_employee):
        mock_get_employee.return_value = None
        response = client.post("/api/ai/predict-performance", json={"employee_id": "e1"}, headers=EMPLOYEE)
        assert response.status_code == 404

    def test_status(self):
        response = client.get("/api/ai/status")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "operational"
        assert data["llm_enabled"] is False
        assert "leave_request" in data["intents"]

    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
