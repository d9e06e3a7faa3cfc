"""Exception types raised inside slurp.

Only configuration problems are exceptions - probe failures are data
(see ProbeOutcome) and never cross the runner boundary.
"""


class SlurpError(Exception):
    """Base class for all slurp errors."""


class ConfigError(SlurpError):
    """A configuration value from .env / environment / CLI is unusable."""


class PermutationConfigError(SlurpError):
    """The permutation template resource is missing or malformed.

    Fatal: without templates there is nothing meaningful to probe.
    """
