"""Uniform wrapper around outbound GitHub/Linear calls"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from syncbridge.services.errors import CounterpartCallFailed, FatalReconciliationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundPolicy:
    """Timeout and retry policy for outbound calls.

    The default is fire-once: a single attempt, no backoff.
    """

    timeout_seconds: float = 10.0
    max_attempts: int = 1
    base_delay_seconds: float = 0.5

    @classmethod
    def from_settings(cls, settings) -> "OutboundPolicy":
        return cls(
            timeout_seconds=settings.outbound_timeout_seconds,
            max_attempts=max(1, int(settings.outbound_max_attempts)),
            base_delay_seconds=settings.outbound_retry_delay_seconds,
        )


def is_success(status_code: Optional[int]) -> bool:
    return status_code is not None and 200 <= status_code < 300


def _format_context(context: Optional[Dict[str, Any]]) -> str:
    if not context:
        return ""
    return ", ".join(f"{key}={value}" for key, value in context.items() if value is not None)


def _body_excerpt(response: httpx.Response, limit: int = 300) -> str:
    try:
        text = response.text
    except Exception:
        return ""
    return text if len(text) <= limit else text[:limit] + "..."


class MutationExecutor:
    """Call the counterpart system, interpret the status code, log the outcome."""

    RETRY_STATUS_CODES = (429, 500, 502, 503, 504)

    def __init__(self, policy: Optional[OutboundPolicy] = None, sleep: Callable[[float], None] = time.sleep):
        self.policy = policy or OutboundPolicy()
        self._sleep = sleep

    def _with_retries(self, fn: Callable[[], httpx.Response]) -> httpx.Response:
        """Run callable with small exponential backoff on transient errors."""
        attempt = 1
        while True:
            try:
                response = fn()
            except httpx.HTTPError:
                if attempt >= self.policy.max_attempts:
                    raise
            else:
                if (
                    response.status_code not in self.RETRY_STATUS_CODES
                    or attempt >= self.policy.max_attempts
                ):
                    return response
            self._sleep(self.policy.base_delay_seconds * (2 ** (attempt - 1)))
            attempt += 1

    def call(
        self,
        action: str,
        fn: Callable[[], httpx.Response],
        *,
        context: Optional[Dict[str, Any]] = None,
        fatal: bool = False,
        fatal_status: int = 500,
        accept: Iterable[int] = (),
    ) -> httpx.Response:
        """Run one outbound call.

        Returns the response on 2xx (or a status listed in `accept`). Otherwise
        logs the failure with its context and raises `CounterpartCallFailed`,
        or `FatalReconciliationError` when `fatal` is set.
        """
        ctx = _format_context(context)
        try:
            response = self._with_retries(fn)
        except httpx.HTTPError as e:
            message = f"Could not {action} ({ctx}): {e.__class__.__name__}: {e}"
            logger.error(message)
            if fatal:
                raise FatalReconciliationError(message, fatal_status) from e
            raise CounterpartCallFailed(message) from e

        if is_success(response.status_code) or response.status_code in tuple(accept):
            logger.debug(f"{action} succeeded ({ctx}) with status {response.status_code}")
            return response

        message = (
            f"Could not {action} ({ctx}): received status code {response.status_code}, "
            f"body of {_body_excerpt(response)}"
        )
        logger.error(message)
        if fatal:
            raise FatalReconciliationError(message, fatal_status)
        raise CounterpartCallFailed(message, response.status_code)
