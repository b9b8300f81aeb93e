"""
HTTP utilities for fetching decision tree documents.

Provides retries with exponential backoff, a circuit breaker, and an
in-process response cache so a tree URL is fetched once per session.
"""
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class CircuitOpenError(RuntimeError):
    """Raised when the circuit breaker is open."""


@dataclass
class RetryConfig:
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    jitter_ratio: float = 0.3
    timeout_seconds: float = 15.0

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> "RetryConfig":
        config = config or {}
        defaults = cls()
        return cls(
            max_retries=int(config.get("max_retries", defaults.max_retries)),
            base_delay_seconds=float(config.get("retry_base_seconds", defaults.base_delay_seconds)),
            max_delay_seconds=float(config.get("retry_max_seconds", defaults.max_delay_seconds)),
            jitter_ratio=float(config.get("retry_jitter_ratio", defaults.jitter_ratio)),
            timeout_seconds=float(config.get("timeout_seconds", defaults.timeout_seconds)),
        )


class CircuitBreaker:
    """Opens after consecutive failures; allows one probe once the cool-down passes."""

    def __init__(self, failure_threshold: int = 3, open_seconds: int = 300):
        self.failure_threshold = failure_threshold
        self.open_seconds = open_seconds
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._probing = False

    @property
    def is_open(self) -> bool:
        return self._opened_at is not None

    def can_attempt(self) -> bool:
        if self._opened_at is None:
            return True
        if time.monotonic() - self._opened_at < self.open_seconds or self._probing:
            return False
        self._probing = True
        return True

    def record_success(self) -> None:
        self._failures = 0
        self._opened_at = None
        self._probing = False

    def record_failure(self) -> None:
        self._failures += 1
        if self._failures >= self.failure_threshold:
            self._opened_at = time.monotonic()
            self._probing = False


class HttpClient:
    """JSON-over-HTTP client with retries, circuit breaking and caching."""

    def __init__(
        self,
        name: str = "decision_tree",
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        cache_enabled: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.name = name
        self.session = session or requests.Session()
        self.retry_config = retry_config or RetryConfig()
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.cache_enabled = cache_enabled
        self._cache: Dict[str, Any] = {}

    def get_json(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """
        Fetch and decode a JSON document.

        Raises:
            CircuitOpenError: If earlier failures opened the circuit
            requests.RequestException: If retries are exhausted
        """
        if self.cache_enabled and url in self._cache:
            logger.debug(f"{self.name}: cache hit for {url}")
            return self._cache[url]

        response = self._get(url, headers)
        payload = response.json()

        if self.cache_enabled:
            self._cache[url] = payload
        return payload

    def _get(self, url: str, headers: Optional[Dict[str, str]]) -> requests.Response:
        if not self.circuit_breaker.can_attempt():
            raise CircuitOpenError(f"{self.name} circuit open")

        attempts = self.retry_config.max_retries + 1
        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = self.session.request(
                    "GET", url, headers=headers, timeout=self.retry_config.timeout_seconds
                )
            except requests.RequestException as exc:
                if is_last:
                    self.circuit_breaker.record_failure()
                    raise
                logger.warning(f"{self.name}: request to {url} failed ({exc}), retrying")
                self._backoff(attempt, None)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and not is_last:
                logger.warning(f"{self.name}: HTTP {response.status_code} from {url}, retrying")
                self._backoff(attempt, self._retry_after(response))
                continue

            if response.status_code >= 400:
                self.circuit_breaker.record_failure()
                response.raise_for_status()

            self.circuit_breaker.record_success()
            return response

        # Unreachable: the last attempt either returns or raises
        raise RuntimeError(f"{self.name}: request to {url} failed")

    def _retry_after(self, response: requests.Response) -> Optional[float]:
        value = response.headers.get("Retry-After")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            pass
        try:
            when = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.debug(f"Unable to parse Retry-After header: {value}")
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

    def _backoff(self, attempt: int, retry_after: Optional[float]) -> None:
        delay = min(
            self.retry_config.max_delay_seconds,
            self.retry_config.base_delay_seconds * (2 ** attempt),
        )
        delay += delay * random.uniform(0, self.retry_config.jitter_ratio)
        if retry_after is not None:
            delay = max(delay, retry_after)
        time.sleep(delay)
