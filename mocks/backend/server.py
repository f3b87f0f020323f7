"""
Mock platform backend that enforces bearer sessions.
"""

import asyncio
import secrets
import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.logging import get_logger


class MockBackendServer:
    """Mock backend implementation.

    Accepts requests whose bearer token is currently valid. Individual paths
    can be scripted with a queue of status codes (and optional bodies) that
    take precedence over the token check, which is how tests reproduce
    sequences such as 401, 401, 200.
    """

    def __init__(self, forbidden_message: str = "Invalid session"):
        self.logger = get_logger("mock.backend")
        self.app = FastAPI(title="Mock Platform Backend", version="1.0.0")
        self.forbidden_message = forbidden_message

        self.valid_tokens: Dict[str, float] = {}
        self.scripts: Dict[str, Deque[Dict[str, Any]]] = defaultdict(deque)
        self.received: List[Dict[str, Any]] = []

        self._setup_routes()

    def issue_token(self, expires_in: int = 3600) -> Dict[str, Any]:
        """Mint a session the way the identity provider would."""
        token = secrets.token_urlsafe(16)
        expires_at = int(time.time()) + expires_in
        self.valid_tokens[token] = expires_at
        return {"access_token": token, "expires_at": expires_at}

    def revoke(self, token: str) -> None:
        self.valid_tokens.pop(token, None)

    def script(self, path: str, *statuses: int, body: str = "Invalid session") -> None:
        """Queue status codes for ``path``; 2xx entries answer with a JSON payload."""
        for status in statuses:
            self.scripts[path].append({"status": status, "body": body})

    def requests_for(self, path: str) -> List[Dict[str, Any]]:
        return [entry for entry in self.received if entry["path"] == path]

    def _token_valid(self, authorization: Optional[str]) -> bool:
        if not authorization or not authorization.startswith("Bearer "):
            return False
        expires_at = self.valid_tokens.get(authorization[7:].strip())
        return expires_at is not None and expires_at > time.time()

    def _setup_routes(self):
        """Set up mock backend routes."""

        @self.app.get("/__health")
        async def health():
            """Health probe, no credentials required."""
            return {"status": "ok"}

        @self.app.get("/logo.png")
        async def logo(request: Request):
            """Static asset served without credentials."""
            self._record(request, b"")
            return PlainTextResponse("PNG", media_type="image/png")

        @self.app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
        async def api(path: str, request: Request):
            """Catch-all API endpoint guarded by bearer sessions."""
            body = await request.body()
            self._record(request, body)
            route = f"/{path}"

            scripted = self.scripts.get(route)
            if scripted:
                step = scripted.popleft()
                if step["status"] >= 400:
                    return PlainTextResponse(
                        step["body"],
                        status_code=step["status"],
                        headers={"x-request-id": f"mock-{len(self.received)}"}
                    )
                return JSONResponse({"path": route, "ok": True}, status_code=step["status"])

            if not self._token_valid(request.headers.get("authorization")):
                self.logger.info("Rejected request", path=route)
                return PlainTextResponse(
                    self.forbidden_message,
                    status_code=401,
                    headers={"x-request-id": f"mock-{len(self.received)}"}
                )

            return JSONResponse({"path": route, "ok": True})

    def _record(self, request: Request, body: bytes) -> None:
        self.received.append({
            "path": request.url.path,
            "method": request.method,
            "authorization": request.headers.get("authorization"),
            "content_type": request.headers.get("content-type"),
            "body": body.decode("utf-8", errors="replace"),
        })


class MockSessionSource:
    """Session source backed by a MockBackendServer, wired as gateway hooks."""

    def __init__(self, server: MockBackendServer, expires_in: int = 3600, refresh_delay: float = 0.0):
        self.server = server
        self.expires_in = expires_in
        self.refresh_delay = refresh_delay
        self.session: Optional[Dict[str, Any]] = server.issue_token(expires_in)
        self.refresh_calls = 0

    def get_access_token(self) -> Optional[str]:
        return self.session["access_token"] if self.session else None

    def get_session(self) -> Optional[Dict[str, Any]]:
        return self.session

    async def get_access_token_async(self) -> Optional[str]:
        return self.get_access_token()

    async def get_session_async(self) -> Optional[Dict[str, Any]]:
        return self.session

    async def refresh_session(self) -> Dict[str, Any]:
        self.refresh_calls += 1
        if self.refresh_delay:
            await asyncio.sleep(self.refresh_delay)
        if self.session:
            self.server.revoke(self.session["access_token"])
        self.session = self.server.issue_token(self.expires_in)
        return self.session

    def hooks(self) -> Dict[str, Any]:
        return {
            "get_access_token": self.get_access_token,
            "get_session": self.get_session,
            "get_access_token_async": self.get_access_token_async,
            "get_session_async": self.get_session_async,
            "refresh_session": self.refresh_session,
        }


def create_app():
    """Create mock backend application."""
    server = MockBackendServer()
    return server.app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=3001)
