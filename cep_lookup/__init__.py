"""
CEP Race Lookup

Resolves a Brazilian postal code (CEP) by racing redundant upstream
providers against a shared deadline:
- One worker thread per provider
- First success wins, one early failure is forgiven
- Losers are cancelled through the shared scope
"""

from .interfaces import (
    LookupKey,
    CEPResult,
    Failure,
    FailureKind,
    RaceOutcome,
    RaceState,
    Provider,
)
from .errors import (
    CEPLookupError,
    Exhausted,
    InvalidKey,
)
from .deadline import DeadlineScope, create_scope
from .race import RaceCoordinator, race, settle, DEFAULT_TIMEOUT

__all__ = [
    'LookupKey',
    'CEPResult',
    'Failure',
    'FailureKind',
    'RaceOutcome',
    'RaceState',
    'Provider',
    'CEPLookupError',
    'Exhausted',
    'InvalidKey',
    'DeadlineScope',
    'create_scope',
    'RaceCoordinator',
    'race',
    'settle',
    'DEFAULT_TIMEOUT',
]
