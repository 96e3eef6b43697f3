"""Error taxonomy for place discovery.

Request-level failures (Misconfigured, UpstreamUnavailable) reach the caller.
InvalidCandidate is internal: raised at the transport boundary or in the
ranker and recovered locally by dropping the offending record.
"""


class DiscoveryError(Exception):
    """Base class for every error raised by the discovery core."""


class Misconfigured(DiscoveryError):
    """No usable credential or configuration to reach the provider. Not retried."""


class UpstreamUnavailable(DiscoveryError):
    """The provider could not be reached, errored, or timed out."""


class InvalidCandidate(DiscoveryError):
    """A raw place record lacks the fields needed to identify it."""
