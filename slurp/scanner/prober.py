"""Bucket probe - classify one candidate hostname against the S3 endpoint.

Every request goes to the same endpoint address; the bucket is selected by
the Host header (virtual-hosted-style addressing). That means no DNS lookup
per candidate and one warm connection pool for the whole run.

CLASSIFICATION:
    200 -> PUBLIC      bucket lists anonymously
    307 -> follow Location once, classify that response (no second hop)
    403 -> FORBIDDEN   bucket exists, access denied
    404 -> NOT_FOUND   nobody owns the name
    503 -> RATE_LIMITED, put the candidate back on the queue
    other -> UNKNOWN   logged with its code, dropped

Network failures (timeouts, resets, refused connections) are requeued too.
Redirects are never followed by aiohttp itself - the 307 and its Location
carry meaning we need to inspect.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from slurp.util.types import Candidate, Classification, ProbeOutcome, ScanConfig

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {
    200: Classification.PUBLIC,
    403: Classification.FORBIDDEN,
    404: Classification.NOT_FOUND,
}

NETWORK_ERRORS = (asyncio.TimeoutError, aiohttp.ClientError, OSError)


@dataclass
class RetryPolicy:
    """How often and how patiently a candidate is retried.

    attempt counts retries already made; a candidate is probed at most
    max_retries + 1 times. max_retries <= 0 retries forever.
    """
    max_retries: int = 10
    backoff_base: float = 0.5
    backoff_max: float = 30.0

    @classmethod
    def from_config(cls, config: ScanConfig) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_max=config.backoff_max,
        )

    def should_retry(self, candidate: Candidate) -> bool:
        return self.max_retries <= 0 or candidate.attempt < self.max_retries

    def backoff(self, attempt: int) -> float:
        """Delay before re-inserting retry number `attempt` (1-based)."""
        if attempt <= 0:
            return 0.0
        exponent = min(attempt - 1, 30)
        return min(self.backoff_max, self.backoff_base * (2 ** exponent))


def is_timeout(error: BaseException) -> bool:
    """Timeouts are expected under load and retried without noise."""
    if isinstance(error, asyncio.TimeoutError):
        return True
    return 'time' in str(error).lower()


class BucketProber:
    """Async HTTP client implementing the classification protocol.

    Uses aiohttp for async performance and connection pooling. A session can
    be injected (tests do this); otherwise one is created on __aenter__ and
    closed on __aexit__.
    """

    def __init__(self, config: ScanConfig, session: Optional[aiohttp.ClientSession] = None):
        self.endpoint = config.endpoint
        self.warmup_delay = config.warmup_delay
        self.header_timeout = config.header_timeout
        self.idle_timeout = config.idle_timeout
        self.concurrency = config.concurrency
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        """Set up aiohttp session with a small, short-lived connection pool."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(
                total=None,
                sock_connect=self.header_timeout,
                sock_read=self.header_timeout,
            )
            connector = aiohttp.TCPConnector(
                limit=self.concurrency,
                limit_per_host=self.concurrency * 4,
                keepalive_timeout=self.idle_timeout,
            )
            self.session = aiohttp.ClientSession(timeout=timeout, connector=connector)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up session."""
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None

    async def probe(self, candidate: Candidate) -> ProbeOutcome:
        """Probe one candidate and classify the answer.

        Never raises for network problems - they come back as a requeue
        outcome with the error text attached.
        """
        if self.warmup_delay:
            await asyncio.sleep(self.warmup_delay)

        try:
            status, location = await self._fetch(self.endpoint, host=candidate.hostname)
        except NETWORK_ERRORS as e:
            return self._network_failure(candidate, e)

        if status == 307:
            return await self._follow_redirect(candidate, location)

        return self._classify(candidate, status, link=candidate.hostname)

    async def _fetch(self, url: str, host: Optional[str] = None):
        """GET url without following redirects; body is drained and dropped."""
        headers = {'Host': host} if host else None
        async with self.session.get(url, headers=headers, allow_redirects=False) as resp:
            await resp.read()
            return resp.status, resp.headers.get('Location')

    async def _follow_redirect(self, candidate: Candidate, location: Optional[str]) -> ProbeOutcome:
        """Region redirect: one fresh GET to Location, classified like the first."""
        if not location:
            logger.warning(f"307 without Location for http://{candidate.hostname}")
            return ProbeOutcome(
                candidate=candidate,
                classification=Classification.UNKNOWN,
                link=candidate.hostname,
                status=307,
            )

        logger.debug(f"http://{candidate.hostname} redirects to {location}")
        try:
            status, _ = await self._fetch(location)
        except NETWORK_ERRORS as e:
            return self._network_failure(candidate, e)

        outcome = self._classify(candidate, status, link=location)
        outcome.redirected = True
        return outcome

    def _classify(self, candidate: Candidate, status: int, link: str) -> ProbeOutcome:
        classification = TERMINAL_STATUSES.get(status)
        if classification is not None:
            return ProbeOutcome(candidate=candidate, classification=classification, link=link, status=status)

        if status == 503:
            return ProbeOutcome(
                candidate=candidate,
                classification=Classification.RATE_LIMITED,
                link=candidate.hostname,
                status=status,
                requeue=True,
            )

        # Anything else, including a second 307, is reported and dropped
        return ProbeOutcome(candidate=candidate, classification=Classification.UNKNOWN, link=link, status=status)

    def _network_failure(self, candidate: Candidate, error: BaseException) -> ProbeOutcome:
        if is_timeout(error):
            logger.debug(f"Timeout for http://{candidate.hostname}, requeueing")
        else:
            logger.error(f"Request for http://{candidate.hostname} failed: {type(error).__name__}: {error}")
        return ProbeOutcome(
            candidate=candidate,
            requeue=True,
            error=f"{type(error).__name__}: {error}",
        )
