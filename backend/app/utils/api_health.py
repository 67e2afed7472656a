"""Helpers for probing the sponsorship API health endpoint."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class APIHealthResult:
    """Outcome of one health probe."""

    ok: bool
    status_code: Optional[int]
    detail: str
    latency_ms: Optional[float]
    service: Optional[str] = None
    version: Optional[str] = None


def _evaluate_payload(
    payload: Any, expected_version: Optional[str]
) -> tuple[bool, str, Optional[str], Optional[str]]:
    if not isinstance(payload, dict):
        return False, "Health endpoint returned non-JSON payload", None, None
    service = payload.get("service")
    version = payload.get("version")
    if payload.get("status") != "ok":
        return False, f"Health endpoint reported status {payload.get('status')!r}", service, version
    if expected_version and version != expected_version:
        return False, f"Expected version {expected_version}, got {version}", service, version
    return True, "API health check succeeded", service, version


def check_api_health(
    base_url: str,
    *,
    timeout: float = 5.0,
    expected_version: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> APIHealthResult:
    """Call ``GET /health`` and report whether the service is up.

    Args:
        base_url: Base URL where the API is hosted (e.g. ``"http://localhost:8000"``).
        timeout: Request timeout in seconds when creating an internal client.
        expected_version: When set, a different reported version fails the probe.
        client: Optional pre-configured ``httpx.Client``.

    Returns:
        APIHealthResult: Whether the probe passed, with status code, latency
            and the reported service name and version.
    """

    url = f"{base_url.rstrip('/')}/health"
    should_close = client is None
    session = client or httpx.Client(timeout=timeout)
    start_time = time.monotonic()

    try:
        response = session.get(url)
        latency_ms = (time.monotonic() - start_time) * 1000
        if response.status_code != httpx.codes.OK:
            logger.warning(
                "API health check failed with status",
                extra={"url": url, "status_code": response.status_code, "latency_ms": latency_ms},
            )
            return APIHealthResult(
                ok=False,
                status_code=response.status_code,
                detail=f"Health endpoint returned {response.status_code}",
                latency_ms=latency_ms,
            )
        try:
            payload = response.json()
        except ValueError:
            payload = None
        ok, detail, service, version = _evaluate_payload(payload, expected_version)
        log = logger.info if ok else logger.warning
        log(detail, extra={"url": url, "latency_ms": latency_ms, "service_version": version})
        return APIHealthResult(
            ok=ok,
            status_code=response.status_code,
            detail=detail,
            latency_ms=latency_ms,
            service=service,
            version=version,
        )
    except httpx.HTTPError as exc:
        latency_ms = (time.monotonic() - start_time) * 1000
        logger.error(
            "API health check request raised an error",
            extra={"url": url, "latency_ms": latency_ms, "error": str(exc)},
        )
        return APIHealthResult(
            ok=False,
            status_code=None,
            detail=f"Request to {url} failed: {exc}",
            latency_ms=latency_ms,
        )
    finally:
        if should_close:
            session.close()


__all__ = ["APIHealthResult", "check_api_health"]
