"""Bucket name permutations - turn a domain or keyword into candidate hostnames.

The template resource is a JSON document:

    {
      "s3_url": "s3.amazonaws.com",
      "permutations": ["%s.%s", "%s-backup.%s", "backup-%s.%s", ...]
    }

Each template takes two positional slots: the candidate name, then the
service suffix. "%s-backup.%s" with "acme" -> "acme-backup.s3.amazonaws.com".

Domain targets also get two variants that can't be expressed as a single
template because they need both labels of the domain:

    acme.com.s3.amazonaws.com   (root.suffix.service)
    acmecom.s3.amazonaws.com    (root+suffix with dots removed)
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from slurp.util.errors import PermutationConfigError
from slurp.util.types import DomainCandidate, KeywordCandidate, Target

logger = logging.getLogger(__name__)

DEFAULT_PERMUTATIONS_FILE = Path(__file__).resolve().parent.parent / "data" / "permutations.json"


@dataclass(frozen=True)
class TemplateSet:
    """Validated contents of the permutation resource."""
    service_suffix: str
    templates: Tuple[str, ...]


def load_templates(path: Optional[Union[str, Path]] = None) -> TemplateSet:
    """Read and validate the permutation template resource.

    Args:
        path: JSON file to load; defaults to the bundled permutations.json

    Raises:
        PermutationConfigError: file missing/unreadable/malformed, a required
            field is missing, or a template doesn't take exactly two names
    """
    path = Path(path) if path else DEFAULT_PERMUTATIONS_FILE

    if not path.is_file():
        raise PermutationConfigError(f"Permutations file not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise PermutationConfigError(f"Cannot read permutations file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise PermutationConfigError(f"Permutations file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PermutationConfigError(f"Permutations file {path} must contain a JSON object")

    service_suffix = data.get('s3_url')
    if not isinstance(service_suffix, str) or not service_suffix.strip():
        raise PermutationConfigError(f"Permutations file {path} has no usable 's3_url' string")

    raw_templates = data.get('permutations')
    if not isinstance(raw_templates, list):
        raise PermutationConfigError(f"Permutations file {path} has no 'permutations' list")

    templates = []
    for i, template in enumerate(raw_templates):
        if not isinstance(template, str):
            raise PermutationConfigError(f"Permutation #{i} in {path} is not a string: {template!r}")
        # Substitution must never fail mid-run, so check every template now
        try:
            template % ("name", "suffix")
        except (TypeError, ValueError) as e:
            raise PermutationConfigError(
                f"Permutation #{i} in {path} ({template!r}) must take exactly two %s slots: {e}"
            ) from e
        templates.append(template)

    logger.debug(f"Loaded {len(templates)} permutation templates from {path}")
    return TemplateSet(service_suffix=service_suffix.strip(), templates=tuple(templates))


class PermutationGenerator:
    """Expands targets and keywords into ordered candidate hostnames.

    Pure and deterministic: same input + same TemplateSet => same sequence.
    """

    def __init__(self, template_set: TemplateSet):
        self.template_set = template_set

    @property
    def service_suffix(self) -> str:
        return self.template_set.service_suffix

    def _apply_templates(self, name: str) -> List[str]:
        return [template % (name, self.service_suffix) for template in self.template_set.templates]

    def permutate_domain(self, root: str, suffix: str) -> List[str]:
        """All bucket hostnames for a domain split into root and suffix labels.

        Template order first, then the two domain-only variants.
        """
        permutations = self._apply_templates(root)

        permutations.append(f"{root}.{suffix}.{self.service_suffix}")
        squashed = f"{root}.{suffix}".replace(".", "")
        permutations.append(f"{squashed}.{self.service_suffix}")

        return permutations

    def permutate_keyword(self, keyword: str) -> List[str]:
        """All bucket hostnames for a keyword (templates only)."""
        return self._apply_templates(keyword)

    def domain_candidates(self, target: Target) -> Iterator[DomainCandidate]:
        for permutation in self.permutate_domain(target.root, target.suffix):
            yield DomainCandidate(permutation=permutation, target=target)

    def keyword_candidates(self, keyword: str) -> Iterator[KeywordCandidate]:
        for permutation in self.permutate_keyword(keyword):
            yield KeywordCandidate(permutation=permutation, keyword=keyword)
