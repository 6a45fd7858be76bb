from datetime import date


class TestAdminRoutes:
    """관리자 라우터 테스트"""

    def test_non_admin_forbidden(self, client, user_headers):
        response = client.post(
            "/api/v1/admin/coins/grant",
            json={"user_id": "user-1", "amount": 10},
            headers=user_headers,
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_002"

    def test_grant_and_penalize(self, client, admin_headers):
        # When
        granted = client.post(
            "/api/v1/admin/coins/grant",
            json={"user_id": "user-1", "amount": 100, "description": "launch bonus"},
            headers=admin_headers,
        )
        penalized = client.post(
            "/api/v1/admin/coins/penalize",
            json={"user_id": "user-1", "amount": 150, "reason": "fraud"},
            headers=admin_headers,
        )

        # Then
        assert granted.status_code == 200
        assert granted.json()["total_earned"] == 100
        assert penalized.status_code == 200
        assert penalized.json()["available_coins"] == 0

    def test_review_queue(self, client, user_headers, admin_headers):
        # Given
        client.post(
            "/api/v1/steps",
            json={"steps": 5000, "source": "device", "recorded_date": str(date(2024, 3, 3))},
            headers=user_headers,
        )
        flagged = client.post(
            "/api/v1/steps",
            json={"steps": 8000, "source": "manual", "recorded_date": str(date(2024, 3, 4))},
            headers=user_headers,
        )
        validation_id = flagged.json()["error"]["details"]["validation_id"]

        # When
        queue = client.get("/api/v1/admin/steps/validations", headers=admin_headers)
        approved = client.post(
            f"/api/v1/admin/steps/validations/{validation_id}/approve",
            json={"comment": "verified with user"},
            headers=admin_headers,
        )
        again = client.post(
            f"/api/v1/admin/steps/validations/{validation_id}/reject",
            json={},
            headers=admin_headers,
        )

        # Then
        assert [v["id"] for v in queue.json()] == [validation_id]
        assert approved.status_code == 200
        assert approved.json()["coins_awarded"] == 80
        assert again.status_code == 409

    def test_order_status_update(self, client, user_headers, admin_headers, coin_service):
        # Given
        coin_service.grant("user-1", 100)
        order_id = client.post(
            "/api/v1/orders",
            json={"items": [{"product_id": "cap", "quantity": 1, "price_per_unit": 100}]},
            headers=user_headers,
        ).json()["id"]

        # When
        illegal = client.patch(
            f"/api/v1/admin/orders/{order_id}/status",
            json={"status": "delivered"},
            headers=admin_headers,
        )
        confirmed = client.patch(
            f"/api/v1/admin/orders/{order_id}/status",
            json={"status": "confirmed"},
            headers=admin_headers,
        )

        # Then
        assert illegal.status_code == 409
        assert confirmed.json()["status"] == "confirmed"

    def test_settings(self, client, admin_headers):
        current = client.get(
            "/api/v1/admin/settings/suspicious_step_multiplier", headers=admin_headers
        )
        updated = client.put(
            "/api/v1/admin/settings/suspicious_step_multiplier",
            json={"value": "2.0"},
            headers=admin_headers,
        )
        invalid = client.put(
            "/api/v1/admin/settings/suspicious_step_multiplier",
            json={"value": "0.9"},
            headers=admin_headers,
        )

        assert current.json()["value"] == "1.5"
        assert updated.json()["value"] == "2.0"
        assert invalid.status_code == 422
