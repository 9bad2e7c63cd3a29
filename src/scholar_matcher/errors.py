"""
Error Taxonomy

Exceptions raised by the analysis pipeline, its collaborators and the record
store. RetryPolicy decides retriability from these types (and from HTTP-like
status codes carried on them); everything else propagates unchanged.
"""

from typing import Optional


class ScholarMatcherError(Exception):
    """Base exception for scholar-matcher."""

    pass


class ConfigurationError(ScholarMatcherError):
    """Raised when a credential or endpoint is missing or invalid.

    Collaborators raise this at construction time, before any network call.
    """

    pass


class AnalysisError(ScholarMatcherError):
    """Base exception for failures inside the analysis pipeline."""

    pass


class TransportError(AnalysisError):
    """Network or HTTP failure talking to a collaborator.

    Args:
        message: Human-readable description
        status_code: HTTP status code when the failure came from a response
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransportError):
    """Collaborator answered with an explicit rate-limit rejection (HTTP 429)."""

    def __init__(self, message: str = "Rate limit exceeded (429)"):
        super().__init__(message, status_code=429)


class EmptyProfileError(AnalysisError):
    """Publication source returned zero articles for a source id.

    Signals a wrong or invalid source id; the user must re-link.
    """

    def __init__(self, source_id: str):
        super().__init__(
            f"No publications found for source id '{source_id}'. "
            "Check that the linked profile id is correct."
        )
        self.source_id = source_id


class MalformedResponseError(AnalysisError):
    """Collaborator returned unparseable or incomplete data."""

    pass


class RecordNotFoundError(ScholarMatcherError, KeyError):
    """No researcher record exists for the requested id."""

    def __init__(self, record_id: str):
        super().__init__(record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return f"Researcher record not found: {self.record_id}"


class InvalidTransitionError(ScholarMatcherError):
    """Requested status transition is not allowed from the record's current state."""

    pass
