from fitapi.database.session import request_session, request_session_scope


class TestRequestSession:
    """요청 범위 세션 테스트"""

    def test_same_session_within_request(self):
        """같은 요청 안에서는 세션을 공유하고, 요청이 끝나면 닫힘"""
        with request_session_scope():
            first = request_session()
            second = request_session()
            assert first is second

        with request_session_scope():
            assert request_session() is not first

    def test_outside_request_opens_new_session(self):
        first = request_session()
        second = request_session()
        try:
            assert first is not second
        finally:
            first.close()
            second.close()
