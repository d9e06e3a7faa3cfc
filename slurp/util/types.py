"""Core data types and enums used across the scanner.

These types make our probe results explicit and consistent.
No magic strings floating around - every classification has a defined meaning.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Any, Optional, Union

from .concurrency import resolve_concurrency


class Classification(Enum):
    """Explicit outcome for every probed bucket name.

    Public: Bucket exists and lists its contents anonymously
    Forbidden: Bucket exists but access is denied
    Not_Found: Nobody owns this bucket name
    Rate_Limited: Endpoint answered 503 - the probe is retried later
    Gave_Up: Retry budget exhausted without a terminal answer
    Unknown: Status code we don't have a rule for
    """
    PUBLIC = "PUBLIC"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT FOUND"
    RATE_LIMITED = "TOO FAST"
    GAVE_UP = "GAVE UP"
    UNKNOWN = "UNKNOWN"


# Classifications that StatsAggregator keeps counters for
COUNTED = (
    Classification.PUBLIC,
    Classification.FORBIDDEN,
    Classification.NOT_FOUND,
    Classification.RATE_LIMITED,
    Classification.GAVE_UP,
)


@dataclass(frozen=True)
class Target:
    """A validated input domain split into registered root and public suffix.

    "www.acme.co.uk" -> root="acme", suffix="co.uk"
    """
    normalized_host: str  # punycode-checked, lowercase
    root: str
    suffix: str
    raw: str  # what the user actually typed

    @property
    def apex(self) -> str:
        return f"{self.root}.{self.suffix}"


@dataclass(frozen=True)
class DomainCandidate:
    """Bucket hostname generated from a domain Target."""
    permutation: str
    target: Target
    attempt: int = 0

    @property
    def hostname(self) -> str:
        return self.permutation

    @property
    def origin(self) -> str:
        return f"http://{self.target.apex}"

    def retried(self) -> "DomainCandidate":
        return replace(self, attempt=self.attempt + 1)


@dataclass(frozen=True)
class KeywordCandidate:
    """Bucket hostname generated from a plain keyword."""
    permutation: str
    keyword: str
    attempt: int = 0

    @property
    def hostname(self) -> str:
        return self.permutation

    @property
    def origin(self) -> str:
        return self.keyword

    def retried(self) -> "KeywordCandidate":
        return replace(self, attempt=self.attempt + 1)


Candidate = Union[DomainCandidate, KeywordCandidate]


@dataclass
class ProbeOutcome:
    """Result of one probe of one candidate.

    Either a terminal classification (with the link that was recorded) or a
    request to put the candidate back on the queue.
    """
    candidate: Candidate
    classification: Optional[Classification] = None
    link: Optional[str] = None
    status: Optional[int] = None
    requeue: bool = False
    error: Optional[str] = None
    redirected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for debug logging."""
        return {
            'hostname': self.candidate.hostname,
            'origin': self.candidate.origin,
            'attempt': self.candidate.attempt,
            'classification': self.classification.value if self.classification else None,
            'link': self.link,
            'status': self.status,
            'requeue': self.requeue,
            'error': self.error,
            'redirected': self.redirected,
        }


@dataclass
class ScanConfig:
    """Runtime configuration for a single enumeration run.

    Values come from .env / SLURP_* environment variables, CLI flags win.
    """
    concurrency: int = 0
    permutations_file: Optional[str] = None

    # Storage endpoint - every lookup goes here, routed by the Host header
    endpoint: str = "http://s3-1-w.amazonaws.com"

    # Pacing and transport limits
    warmup_delay: float = 0.5
    header_timeout: float = 3.0
    idle_timeout: float = 1.0

    # Retry policy (max_retries <= 0 means retry forever)
    max_retries: int = 10
    backoff_base: float = 0.5
    backoff_max: float = 30.0

    # Public suffix list handling
    tld_cache_dir: Optional[str] = None
    offline_suffix_list: bool = False

    log_file: Optional[str] = None
    debug: bool = False

    def __post_init__(self):
        """Resolve concurrency to the CPU count when unset."""
        self.concurrency = resolve_concurrency(self.concurrency)
