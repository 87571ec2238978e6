import time
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.background import BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from app.logging.records import APPLICATION_ID, HOSTNAME, USERNAME, build_log, save_log

logger = logging.getLogger(__name__)

LOGGED_PREFIX = "/api/jreit"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Writes one request_log row per J-REIT API call once the response has been sent.

    Docs, the OpenAPI schema and anything outside ``logged_prefix`` pass through
    untouched.
    """

    def __init__(self, app: ASGIApp, logged_prefix: str = LOGGED_PREFIX):
        super().__init__(app)
        self.logged_prefix = logged_prefix
        logger.info(
            f"Request logging enabled for {logged_prefix} as {USERNAME} on host: {HOSTNAME}, App ID: {APPLICATION_ID}"
        )

    async def dispatch(self, request: Request, call_next: Callable):
        if not request.url.path.startswith(self.logged_prefix):
            return await call_next(request)

        started = time.perf_counter()

        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")
        # Exception handlers read the body from here
        request.state.body = request_body

        # Replay the consumed body for the route
        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        captured = {"body": b""}

        if isinstance(response, Response) and hasattr(response, "body"):
            captured["body"] = response.body
        elif hasattr(response, "body_iterator"):
            original_iterator = response.body_iterator

            async def capturing_iterator():
                chunks = []
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                captured["body"] = b"".join(chunks)

            response.body_iterator = capturing_iterator()

        def write_log():
            body = captured["body"].decode("utf-8", errors="ignore") if captured["body"] else None
            save_log(build_log(request, response.status_code, request_body, body, elapsed_ms))

        # Runs after any task the route attached
        existing = getattr(response, "background", None)
        tasks = BackgroundTasks([existing] if existing is not None else None)
        tasks.add_task(write_log)
        response.background = tasks
        return response
