"""
src/risk/fraud_model.py
========================
External Fraud Model Client — DocVerify

Responsibility:
    - Ask an optional external scoring model for an additional risk
      contribution for one document
    - Bound the whole call (connect, headers and body) with its own
      short deadline
    - FAIL OPEN: any timeout, non-2xx status, or malformed payload yields 0

Request:
    POST <url>  {"sha256": "<content fingerprint>", "riskHint": "<tier label>"}

Response (2xx):
    {"score": <int>}  — clamped to [0, 25]

This module does NOT:
    - Retry failed calls
    - Compute the base risk score (handled by src.risk.scorer)
    - Store data
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import requests

logger = logging.getLogger("docverify.risk.fraud_model")


MAX_ADJUSTMENT: int = 25
DEFAULT_TIMEOUT_MS: int = 2000

# Calls that outlive their deadline keep a worker until the socket gives up
MAX_WORKERS: int = 4


class DisabledFraudModel:
    """FraudModel that always contributes nothing."""

    def score(self, content_fingerprint: str, hint: str) -> int:
        return 0


class HttpFraudModel:
    """FraudModel backed by a JSON-over-HTTP scoring endpoint."""

    def __init__(
        self,
        url: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        enabled: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout_s = max(timeout_ms, 1) / 1000.0
        self.enabled = enabled and bool(url and url.strip())
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(
            max_workers=MAX_WORKERS, thread_name_prefix="fraud-model",
        )

    def score(self, content_fingerprint: str, hint: str) -> int:
        """
        Return the model's additional risk score in [0, 25].

        The requests timeout only bounds each socket operation, so the
        call runs on a worker and is abandoned once timeout_s elapses.
        A late answer is discarded.

        Never raises; every failure mode contributes 0.
        """
        if not self.enabled:
            return 0

        payload = {
            "sha256": content_fingerprint,
            "riskHint": (hint or "").replace('"', ""),
        }

        future = self._executor.submit(self._request, payload)
        try:
            adjustment = future.result(timeout=self.timeout_s)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "Fraud model did not answer within %.0f ms — adjustment 0.",
                self.timeout_s * 1000,
            )
            return 0

        logger.info("Fraud model adjustment: %d.", adjustment)
        return adjustment

    def _request(self, payload: dict[str, str]) -> int:
        try:
            response = self._session.post(self.url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as exc:
            logger.warning("Fraud model call failed: %s — adjustment 0.", exc)
            return 0

        if not 200 <= response.status_code < 300:
            logger.warning(
                "Fraud model returned status %d — adjustment 0.", response.status_code,
            )
            return 0

        try:
            body = response.json()
        except ValueError:
            logger.warning("Fraud model did not return valid JSON — adjustment 0.")
            return 0

        return _parse_score(body)


def _parse_score(body: object) -> int:
    """Extract and clamp the "score" value; malformed payloads give 0."""
    if not isinstance(body, dict):
        return 0

    raw = body.get("score")
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float)):
        # json accepts NaN / Infinity literals
        if not math.isfinite(raw):
            return 0
        value = int(raw)
    elif isinstance(raw, str) and raw.strip().isdecimal():
        value = int(raw.strip())
    else:
        return 0

    return min(max(value, 0), MAX_ADJUSTMENT)
