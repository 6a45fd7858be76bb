from datetime import date, timedelta


class TestStepRoutes:
    """걸음 수 라우터 테스트"""

    def test_submit_steps(self, client, user_headers):
        # When
        response = client.post(
            "/api/v1/steps",
            json={"steps": 5000, "distance": 4000, "source": "device", "recorded_date": "2024-03-04"},
            headers=user_headers,
        )

        # Then
        assert response.status_code == 201
        data = response.json()
        assert data["coins_awarded"] == 50
        assert data["reward_granted"] is True

        balance = client.get("/api/v1/coins/balance", headers=user_headers)
        assert balance.json()["available_coins"] == 50

    def test_unrealistic_stride_rejected(self, client, user_headers):
        response = client.post(
            "/api/v1/steps",
            json={"steps": 1000, "distance": 5000, "source": "device"},
            headers=user_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_suspicious_submission(self, client, user_headers):
        # Given
        yesterday = date(2024, 3, 3)
        client.post(
            "/api/v1/steps",
            json={"steps": 5000, "source": "device", "recorded_date": str(yesterday)},
            headers=user_headers,
        )

        # When
        response = client.post(
            "/api/v1/steps",
            json={
                "steps": 8000,
                "source": "manual",
                "recorded_date": str(yesterday + timedelta(days=1)),
            },
            headers=user_headers,
        )

        # Then
        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "SUSPICIOUS_ACTIVITY"
        assert "validation_id" in error["details"]

    def test_duplicate_submission_conflicts(self, client, user_headers):
        payload = {"steps": 3000, "source": "device", "recorded_date": "2024-03-04"}
        client.post("/api/v1/steps", json=payload, headers=user_headers)

        response = client.post("/api/v1/steps", json=payload, headers=user_headers)

        assert response.status_code == 409

    def test_history_days_out_of_range(self, client, user_headers):
        response = client.get("/api/v1/steps/history?days=400", headers=user_headers)

        assert response.status_code == 422

    def test_today_and_weekly(self, client, user_headers):
        today = client.get("/api/v1/steps/today", headers=user_headers)
        weekly = client.get("/api/v1/steps/weekly", headers=user_headers)

        assert today.status_code == 200
        assert today.json()["steps"] == 0
        assert len(weekly.json()["daily_breakdown"]) == 7
