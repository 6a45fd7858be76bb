from starlette.types import ASGIApp, Receive, Scope, Send

from fitapi.database.session import request_session_scope


class DBSessionMiddleware:
    """요청이 끝나면 그 요청에서 연 DB 세션을 닫는 ASGI 미들웨어

    BaseHTTPMiddleware 와 달리 같은 태스크에서 실행되므로 ContextVar 가
    엔드포인트까지 그대로 전달됩니다.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        with request_session_scope():
            await self.app(scope, receive, send)
