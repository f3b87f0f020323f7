#!/usr/bin/env python3
"""
Smoke-test backend authentication through the gateway.

Sends one request to a backend path with a caller-supplied access token and
reports whether credentials were attached, what the backend answered and
whether the gateway declared the session expired. Useful after rotating
identity provider settings or pointing the client at a new backend.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Optional

import httpx

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from service_authfetch.app.gateway import create_gateway  # noqa: E402
from shared.config import get_config  # noqa: E402


async def smoke(
    *,
    api_base_url: Optional[str],
    path: str,
    token: Optional[str],
    timeout: float,
    client: Optional[httpx.AsyncClient] = None,
) -> dict:
    """Run one authenticated request and return the summary."""
    overrides = {"api_base_url": api_base_url} if api_base_url else {}
    config = get_config(**overrides)
    gateway = create_gateway(config)

    expired = []
    gateway.on_auth_expired_event(expired.append)
    gateway.configure(get_access_token=lambda: token)
    gateway.install(client)

    async with gateway:
        response = await gateway.http_fetch(path, total_timeout=timeout)

    return {
        "api_base_url": config.api_base_url,
        "path": path,
        "backend_bound": gateway.is_backend_bound(path),
        "auth_attached": bool(token) and gateway.is_backend_bound(path),
        "status": response.status_code,
        "request_id": response.headers.get("x-request-id"),
        "auth_expired": expired[0] if expired else None,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke-test backend authentication through the gateway.")
    parser.add_argument("--api-base-url", default=os.getenv("AUTHFETCH_API_BASE_URL"), help="Backend base URL")
    parser.add_argument("--path", default="/me/profile", help="Backend path to request")
    parser.add_argument("--token", default=os.getenv("AUTHFETCH_SMOKE_TOKEN"), help="Access token to present")
    parser.add_argument("--timeout", type=float, default=15.0, help="Total request timeout in seconds")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    try:
        summary = asyncio.run(
            smoke(
                api_base_url=args.api_base_url,
                path=args.path,
                token=args.token,
                timeout=args.timeout,
            )
        )
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - CLI surface
        print(f"[smoke-auth] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))

    if summary["auth_expired"] or summary["status"] in (401, 403):
        print("[smoke-auth] FAIL: backend rejected credentials", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
