"""
Core interfaces for the CEP race lookup.

Defines the data structures exchanged between providers and the race
coordinator, and the abstract base class every provider implements.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Any, Union


# Opaque to the coordinator; only providers interpret it
LookupKey = str


class FailureKind(Enum):
    """Why a single provider did not produce a result."""
    TRANSPORT = "transport"    # connection error, timeout
    PROTOCOL = "protocol"      # non-success status code
    DECODE = "decode"          # malformed or unexpected payload
    NOT_FOUND = "not_found"    # well-formed answer, key has no data
    CANCELLED = "cancelled"    # scope fired before the call finished
    INTERNAL = "internal"      # unexpected exception inside the provider


class RaceState(Enum):
    """States of the race coordinator."""
    RACING = "racing"
    ONE_FAILURE_WAITING = "one_failure_waiting"
    WINNER_FOUND = "winner_found"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class CEPResult:
    """
    Normalized answer from whichever provider won the race.

    Field values are copied verbatim from the upstream response.
    """
    provider_name: str  # e.g. 'Brasil API'
    source_tag: str     # e.g. 'brasilapi'
    cep: str
    street: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return asdict(self)


@dataclass(frozen=True)
class Failure:
    """A provider-tagged failure. Carries no retry metadata."""
    provider_name: str
    message: str
    kind: FailureKind = FailureKind.INTERNAL

    def __str__(self) -> str:
        return f"{self.provider_name}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'provider': self.provider_name,
            'kind': self.kind.value,
            'message': self.message,
        }


# What a provider fetch hands back
FetchOutcome = Union[CEPResult, Failure]


@dataclass
class RaceOutcome:
    """
    Terminal decision of one race.

    Exactly one of: a winner, or exhausted (state EXHAUSTED, winner None).
    """
    state: RaceState
    winner: Optional[CEPResult] = None
    failures: List[Failure] = field(default_factory=list)
    elapsed_ms: int = 0
    reason: Optional[str] = None  # 'deadline', 'all_failed', 'no_providers'

    def __post_init__(self):
        if self.state == RaceState.WINNER_FOUND and self.winner is None:
            raise ValueError("a winning outcome needs a result")
        if self.state == RaceState.EXHAUSTED and self.winner is not None:
            raise ValueError("an exhausted outcome cannot carry a winner")
        if self.state not in (RaceState.WINNER_FOUND, RaceState.EXHAUSTED):
            raise ValueError(f"{self.state.value} is not a terminal state")

    @classmethod
    def won(cls, result: CEPResult, failures: List[Failure], elapsed_ms: int) -> 'RaceOutcome':
        return cls(
            state=RaceState.WINNER_FOUND,
            winner=result,
            failures=list(failures),
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def exhausted(cls, reason: str, failures: List[Failure], elapsed_ms: int) -> 'RaceOutcome':
        return cls(
            state=RaceState.EXHAUSTED,
            failures=list(failures),
            elapsed_ms=elapsed_ms,
            reason=reason,
        )

    @property
    def is_winner(self) -> bool:
        return self.state == RaceState.WINNER_FOUND

    def to_dict(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'winner': self.winner.to_dict() if self.winner else None,
            'failures': [f.to_dict() for f in self.failures],
            'elapsed_ms': self.elapsed_ms,
            'reason': self.reason,
        }


class Provider(ABC):
    """
    Abstract base class for all upstream providers.

    Implementations must be safe to call from a freshly spawned worker
    thread and must not share mutable state between invocations.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name of the provider (e.g., 'Brasil API')."""
        pass

    @property
    @abstractmethod
    def source_tag(self) -> str:
        """Short identifier stamped on results (e.g., 'brasilapi')."""
        pass

    @abstractmethod
    def fetch(self, scope, key: LookupKey) -> FetchOutcome:
        """
        Perform one lookup against the upstream.

        Args:
            scope: The race's DeadlineScope; checked before and after I/O
            key: The lookup key

        Returns:
            CEPResult on success, Failure otherwise. Never raises for
            transport, protocol or payload problems and never retries.
        """
        pass

    def failure(self, message: str, kind: FailureKind) -> Failure:
        """Build a Failure tagged with this provider's name."""
        return Failure(provider_name=self.name, message=message, kind=kind)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name='{self.name}' tag='{self.source_tag}'>"
