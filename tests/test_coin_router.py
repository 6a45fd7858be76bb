class TestCoinRoutes:
    """코인 라우터 테스트"""

    def test_balance_requires_auth(self, client):
        response = client.get("/api/v1/coins/balance")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["error"]["code"] == "AUTH_001"

    def test_invalid_token_rejected(self, client):
        response = client.get(
            "/api/v1/coins/balance", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    def test_balance_without_wallet(self, client, user_headers):
        # When
        response = client.get("/api/v1/coins/balance", headers=user_headers)

        # Then
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "WALLET_NOT_FOUND"

    def test_balance_and_transactions(self, client, user_headers, coin_service):
        # Given
        coin_service.grant("user-1", 120)

        # When
        balance = client.get("/api/v1/coins/balance", headers=user_headers)
        history = client.get("/api/v1/coins/transactions?limit=10", headers=user_headers)
        integrity = client.get("/api/v1/coins/integrity", headers=user_headers)

        # Then
        assert balance.status_code == 200
        assert balance.json()["available_coins"] == 120
        assert history.json()["total"] == 1
        assert history.json()["transactions"][0]["type"] == "earned"
        assert integrity.json()["status"] == "OK"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["database_connected"] is True

    def test_unknown_route_uses_error_body(self, client):
        response = client.get("/api/v1/coins/does-not-exist")

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["error"]["code"] == "NOT_FOUND_001"

    def test_request_id_echoed(self, client, user_headers):
        response = client.get(
            "/api/v1/coins/balance",
            headers={**user_headers, "X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"
