"""
Exception types for the CEP race lookup.

Provider-level exceptions never leave a provider: they are raised inside
the HTTP helpers and converted into Failure values by the provider.
Only Exhausted (and InvalidKey, at the outer surfaces) reach callers.
"""

from typing import Optional

from .interfaces import FailureKind


class CEPLookupError(Exception):
    """Base class for all errors raised by this package."""


class ProviderError(CEPLookupError):
    """A single provider could not produce a result."""

    kind = FailureKind.INTERNAL


class TransportFailure(ProviderError):
    """Network or connection error."""

    kind = FailureKind.TRANSPORT


class ProtocolFailure(ProviderError):
    """Upstream answered with a non-success status code."""

    kind = FailureKind.PROTOCOL

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeFailure(ProviderError):
    """Payload was malformed or did not match the expected schema."""

    kind = FailureKind.DECODE


class NotFound(ProviderError):
    """Well-formed answer saying the key has no data."""

    kind = FailureKind.NOT_FOUND


class ScopeExpired(ProviderError):
    """The race's scope fired before the provider finished."""

    kind = FailureKind.CANCELLED


class InvalidKey(CEPLookupError, ValueError):
    """The caller supplied a key that cannot be a CEP."""


class Exhausted(CEPLookupError):
    """
    No provider produced a usable result for this race.

    Attributes:
        outcome: The RaceOutcome the coordinator decided on
    """

    def __init__(self, outcome):
        self.outcome = outcome
        super().__init__(self._describe(outcome))

    @property
    def timed_out(self) -> bool:
        return self.outcome.reason == 'deadline'

    @staticmethod
    def _describe(outcome) -> str:
        if outcome.reason == 'deadline':
            return "Timeout: no provider answered in time"
        if outcome.reason == 'no_providers':
            return "No providers configured"
        details = "; ".join(str(f) for f in outcome.failures)
        return f"All providers failed: {details}" if details else "All providers failed"
