from datetime import datetime, timedelta

from app.services.performance import (
    FEATURE_COUNT, employee_performance_data, extract_performance_features, predict_performance,
)


STRONG_EMPLOYEE = {
    "years_of_experience": 12,
    "skills": ["python"] * 30,
    "education_level": 0.8,
    "certifications": ["aws", "pmp", "cka"],
    "previous_rating": 0.9,
    "attendance_rate": 0.99,
    "project_completion_rate": 0.95,
    "teamwork_score": 0.9,
    "communication_score": 0.85,
    "leadership_score": 0.8,
    "training_hours": 60,
    "feedback_score": 0.9,
    "goal_achievement_rate": 0.95,
    "innovation_score": 0.8,
    "adaptability_score": 0.85,
}


class TestPerformancePrediction:

    def test_feature_vector(self):
        features = extract_performance_features({"attendance_rate": 1.4, "years_of_experience": 10})
        assert features.shape == (FEATURE_COUNT,)
        assert features[10] == 1.0
        assert features[0] == 0.5
        assert features[5] == 0.0

    def test_no_data_uses_defaults(self):
        prediction = predict_performance({})
        assert 0 <= prediction.score <= 100
        assert prediction.confidence == 0.0
        assert any(f.factor == "Years of experience" and f.impact == "negative" for f in prediction.factors)
        assert len(prediction.recommendations) <= 5

    def test_strong_employee(self):
        prediction = predict_performance(STRONG_EMPLOYEE)
        assert prediction.score > predict_performance({}).score
        assert prediction.confidence == 1.0
        positives = [f for f in prediction.factors if f.impact == "positive"]
        assert len(positives) == 3
        assert prediction.recommendations == []

    def test_weak_signals_get_recommendations(self):
        prediction = predict_performance({"communication_score": 0.2, "attendance_rate": 0.3})
        assert "Enrol in a communication skills workshop" in prediction.recommendations
        assert "Review attendance patterns and agree on a schedule" in prediction.recommendations


class TestEmployeeData:

    def test_maps_stored_employee(self):
        employee = {
            "employee_id": "e1",
            "hire_date": (datetime.utcnow() - timedelta(days=365 * 4 + 2)).isoformat(),
            "skills": [{"name": "Python", "level": "advanced"}],
            "education": [{"degree": "Master of Science"}],
            "performance": {"rating": 4},
            "metrics": {"attendance_rate": 0.97},
        }
        data = employee_performance_data(employee)
        assert 3.9 < data["years_of_experience"] < 4.1
        assert data["education_level"] == 0.8
        assert data["previous_rating"] == 0.8
        assert data["attendance_rate"] == 0.97
        assert "certifications" not in data

    def test_explicit_years_win(self):
        data = employee_performance_data({"years_of_experience": 7, "hire_date": "2020-01-01"})
        assert data["years_of_experience"] == 7
