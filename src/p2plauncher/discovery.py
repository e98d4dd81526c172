"""Locate the companion P2P service, retrying while it starts up."""

import asyncio
import http.client
import json
import logging
import threading
import time
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from pydantic import ValidationError

from p2plauncher.errors import DiscoveryAttemptError, MalformedPayloadError
from p2plauncher.models import DEFAULT_DISCOVERY_URL, FALLBACK_RESULT, DiscoveryResult, RetryPolicy

log = logging.getLogger(__name__)

NETWORK_TIMEOUT_SECONDS = 1.5
# Attempts never get less than this, even when the time budget is nearly spent.
MIN_ATTEMPT_TIMEOUT_SECONDS = 0.05


def parse_server_info(payload: object) -> DiscoveryResult:
    """Validate a decoded `/server-info` body into a DiscoveryResult."""
    if not isinstance(payload, dict):
        raise MalformedPayloadError(f"expected a JSON object, got {type(payload).__name__}")
    try:
        return DiscoveryResult.model_validate(payload, strict=True)
    except ValidationError as e:
        raise MalformedPayloadError(f"invalid server info: {e.error_count()} error(s)") from e


def _fetch_server_info(url: str, timeout: float) -> DiscoveryResult:
    """Make one discovery request. Raises DiscoveryAttemptError on any failure."""
    request = Request(
        url,
        headers={"Accept": "application/json", "User-Agent": "p2plauncher discovery"},
    )
    try:
        with urlopen(request, timeout=timeout) as response:
            status = getattr(response, "status", 200)
            if not 200 <= status < 300:
                raise DiscoveryAttemptError(f"HTTP {status}")
            payload = json.load(response)
    except HTTPError as e:
        raise DiscoveryAttemptError(f"HTTP {e.code}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedPayloadError(f"body is not JSON: {e}") from e
    except (URLError, http.client.HTTPException, TimeoutError, OSError) as e:
        raise DiscoveryAttemptError(str(e)) from e
    return parse_server_info(payload)


def discover(
    policy: RetryPolicy | None = None,
    url: str | None = None,
    *,
    request_timeout: float = NETWORK_TIMEOUT_SECONDS,
    cancel: threading.Event | None = None,
) -> DiscoveryResult:
    """Return the companion service address, or FALLBACK_RESULT if it never answers.

    Attempts are strictly sequential with the full policy delay between them.
    With a positive delay the whole call finishes within
    ``max_attempts * delay_between_attempts``: request timeouts are clipped to
    whatever budget remains. Setting ``cancel`` abandons the remaining
    attempts and returns the fallback.
    """
    policy = policy or RetryPolicy()
    url = url or DEFAULT_DISCOVERY_URL
    cancel = cancel or threading.Event()

    budget = policy.budget_seconds
    deadline = time.monotonic() + budget if budget > 0 else None

    for attempt in range(1, policy.max_attempts + 1):
        if cancel.is_set():
            log.info("discovery cancelled before attempt %d", attempt)
            break

        timeout = request_timeout
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                log.debug("discovery budget of %.2fs spent", budget)
                break
            timeout = max(min(timeout, remaining), MIN_ATTEMPT_TIMEOUT_SECONDS)

        try:
            result = _fetch_server_info(url, timeout)
        except DiscoveryAttemptError as e:
            log.info("discovery attempt %d/%d failed: %s", attempt, policy.max_attempts, e)
        else:
            log.info("discovered companion service at %s (attempt %d)", result, attempt)
            return result

        if attempt == policy.max_attempts:
            break

        delay = policy.delay_between_attempts
        if deadline is not None:
            delay = min(delay, max(deadline - time.monotonic(), 0.0))
        log.debug("waiting %.2fs before retrying", delay)
        if cancel.wait(delay):
            log.info("discovery cancelled while waiting")
            break

    log.warning("companion service not found, using %s", FALLBACK_RESULT)
    return FALLBACK_RESULT


async def discover_async(
    policy: RetryPolicy | None = None,
    url: str | None = None,
    *,
    request_timeout: float = NETWORK_TIMEOUT_SECONDS,
) -> DiscoveryResult:
    """Run discover() in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(discover, policy, url, request_timeout=request_timeout)
