"""Exception hierarchy for issue search.

Only two conditions are reinterpreted by this package:
- a vector backend that cannot serve a similarity query
  (`SimilaritySearchUnavailableError`, recovered by the semantic strategy)
- a failure of the terminal browse strategy (`SearchUnavailableError`)

Every other collaborator error propagates unchanged.
"""


class IssueSearchError(Exception):
    """Base class for all issue search errors."""


class ConfigurationError(IssueSearchError):
    """Raised when configuration names an unknown backend or provider."""


class SimilaritySearchUnavailableError(IssueSearchError):
    """Raised when a vector backend cannot execute a similarity query.

    The storage engine's own error text is not part of the
    message; it is available on ``__cause__`` for logging.
    """

    def __init__(self, backend: str, message: str = "similarity search unavailable"):
        self.backend = backend
        super().__init__(f"{message} ({backend})")


class SearchUnavailableError(IssueSearchError):
    """Raised when the authoritative strategy of a request fails.

    Attributes:
        strategy: Kind of the strategy that failed (e.g. "browse")
    """

    def __init__(self, strategy: str):
        self.strategy = strategy
        super().__init__(f"search unavailable: {strategy} strategy failed")
