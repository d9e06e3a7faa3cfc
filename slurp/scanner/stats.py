"""Run statistics - per-classification counters and link lists.

Every probe task writes here. All tasks run on one event loop and record()
has no await inside, so each counter bump + link append happens as one
step; no lock is needed.
"""

from collections import OrderedDict
from typing import Dict, List, Any

from slurp.util.types import Classification, COUNTED

# Always listed in the end-of-run report
REPORTED = (Classification.PUBLIC, Classification.FORBIDDEN)


def _as_url(link: str) -> str:
    return link if "://" in link else f"http://{link}"


class StatsAggregator:
    """Counts and links per classification, in completion order."""

    def __init__(self):
        self._counts: Dict[Classification, int] = OrderedDict((c, 0) for c in COUNTED)
        self._links: Dict[Classification, List[str]] = OrderedDict((c, []) for c in COUNTED)

    def record(self, classification: Classification, link: str):
        """Count one event and remember its link.

        UNKNOWN outcomes are not counted - they are only logged.
        """
        if classification not in self._counts:
            return
        self._counts[classification] += 1
        self._links[classification].append(link)

    def count(self, classification: Classification) -> int:
        return self._counts.get(classification, 0)

    def links(self, classification: Classification) -> List[str]:
        return list(self._links.get(classification, []))

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            c.name: {'count': self._counts[c], 'links': list(self._links[c])}
            for c in COUNTED
        }

    def summary(self) -> str:
        """One-line report for the end of a run."""
        parts = [f"{c.name}={self._counts[c]}" for c in COUNTED]
        return "Stats: " + " ".join(parts)

    def report(self, verbose: bool = False) -> List[str]:
        """Summary line followed by one line per recorded link.

        Hits (PUBLIC, FORBIDDEN) are always listed; misses and retries only
        when verbose.
        """
        shown = COUNTED if verbose else REPORTED
        lines = [self.summary()]
        for c in shown:
            for link in self._links[c]:
                lines.append(f"  {c.name}: {_as_url(link)}")
        return lines

    def __repr__(self) -> str:
        return f"StatsAggregator({self.summary()})"
