"""Input normalization - turning raw user strings into probe-ready targets.

WHY THIS MATTERS:
Bucket names are derived straight from what the user typed, so garbage in
means thousands of pointless requests out. Two rules come from the storage
service itself:

1. Bucket names are ASCII only. An internationalized domain like
   "münchen.de" becomes "xn--mnchen-3ya.de" in punycode, which is a
   different name entirely - guessing buckets for it makes no sense.
   Any input whose punycode form differs from the input is rejected.
2. Permutations are built from the registered root label, not the full
   host. "www.acme.co.uk" must give root "acme" and suffix "co.uk", which
   needs the public suffix list (tldextract) - naive dot splitting gets
   multi-label suffixes wrong.

Every rejection is a skip with a log line, never fatal for the run.
"""

import logging
from typing import Iterable, List, Optional
from urllib.parse import urlparse

import tldextract

from slurp.util.types import Target

logger = logging.getLogger(__name__)


def build_extractor(cache_dir: Optional[str] = None, offline: bool = False) -> tldextract.TLDExtract:
    """Create a public suffix extractor.

    offline=True skips fetching the live suffix list and uses the snapshot
    bundled with tldextract.
    """
    kwargs = {}
    if cache_dir:
        kwargs['cache_dir'] = cache_dir
    if offline:
        kwargs['suffix_list_urls'] = ()
    return tldextract.TLDExtract(**kwargs)


def to_punycode(domain: str) -> Optional[str]:
    """Punycode-encode a domain, None if it can't be encoded at all."""
    try:
        return domain.encode('idna').decode('ascii')
    except (UnicodeError, UnicodeDecodeError):
        return None


def _strip_protocol_and_path(value: str) -> str:
    """Strip protocol, port, and path from URL-like string.

    Examples:
        "https://example.com/path" -> "example.com"
        "example.com:443" -> "example.com"
    """
    if '://' in value:
        parsed = urlparse(value)
        value = parsed.netloc or parsed.path

    if ':' in value:
        value = value.split(':')[0]

    if '/' in value:
        value = value.split('/')[0]

    return value.strip()


class InputNormalizer:
    """Validates domain and keyword inputs for the two run modes."""

    def __init__(self, extractor: Optional[tldextract.TLDExtract] = None):
        """Use the given extractor, or a default online one."""
        self.extractor = extractor or build_extractor()

    def normalize_domain(self, raw: str) -> Optional[Target]:
        """Validate one domain input.

        Returns:
            Target, or None if the input must be skipped
        """
        if not raw or not raw.strip():
            return None

        domain = _strip_protocol_and_path(raw.strip()).lower().rstrip('.')
        if not domain:
            logger.error(f"{raw!r} is not a valid domain")
            return None

        puny = to_punycode(domain)
        if puny is None:
            logger.error(f"Domain {raw} cannot be converted to punycode")
            return None

        if puny != domain:
            logger.info(f"Domain {domain} is {puny} (punycode)")
            logger.error(f"Internationalized domains cannot be S3 buckets ({domain})")
            return None

        result = self.extractor(puny)
        if not result.domain or not result.suffix:
            logger.error(f"{puny} is not a valid domain")
            return None

        return Target(
            normalized_host=puny,
            root=result.domain,
            suffix=result.suffix,
            raw=raw,
        )

    def normalize_domains(self, raws: Iterable[str]) -> List[Target]:
        """Validate many domains, dropping the bad ones. Input order is kept."""
        targets = []
        skipped = 0
        for raw in raws:
            target = self.normalize_domain(raw)
            if target is None:
                if raw and raw.strip():
                    skipped += 1
                continue
            targets.append(target)

        if skipped:
            logger.info(f"Normalization: skipped {skipped} invalid domain(s)")
        return targets

    @staticmethod
    def normalize_keywords(raws: Iterable[str]) -> List[str]:
        """Keywords only need trimming; empty entries are dropped."""
        return [raw.strip() for raw in raws if raw and raw.strip()]
