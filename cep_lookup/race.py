"""
Race coordinator for CEP lookups.

Fans one lookup out to every provider on its own worker thread, collects
outcomes through two bounded channels and picks a winner:

1. Wait on successes, failures and the deadline
2. First success wins; the scope is cancelled and losers are discarded
3. First failure is forgiven once; from then on only a success or the
   deadline is waited for (later failures are logged and dropped)
4. Deadline before any answer means the race is exhausted

Once every provider has reported a failure nobody is left to answer, so
the race ends right away instead of sitting out the deadline.
"""

import math
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from logging_config import get_logger

from .channels import OutcomeChannel, make_channels
from .deadline import DeadlineScope, create_scope
from .errors import Exhausted
from .interfaces import (
    CEPResult,
    Failure,
    FailureKind,
    LookupKey,
    Provider,
    RaceOutcome,
    RaceState,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 1.0  # seconds

# What the coordinator's wait woke up for
_SUCCESS = 'success'
_FAILURE = 'failure'
_EXPIRED = 'expired'
_ALL_FAILED = 'all_failed'


class RaceCoordinator:
    """
    Runs one race per call to run().

    Every run gets its own scope, channels and thread pool; nothing is
    carried over from one race to the next.
    """

    def __init__(self, providers: Sequence[Provider], timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the coordinator.

        Args:
            providers: Providers to race against each other
            timeout: Per-race time budget in seconds
        """
        if timeout is None or not math.isfinite(timeout) or timeout <= 0:
            raise ValueError(f"timeout must be a positive number, got {timeout!r}")
        self.providers = list(providers or [])
        self.timeout = timeout

    def run(self, key: LookupKey) -> RaceOutcome:
        """
        Race all providers for `key`.

        Returns:
            RaceOutcome with either a winner or state EXHAUSTED. Provider
            problems never raise here.
        """
        start = time.monotonic()

        if not self.providers:
            logger.error("Race has no providers", extra={"cep": key})
            return RaceOutcome.exhausted('no_providers', [], 0)

        logger.info(
            f"Race started with {len(self.providers)} providers",
            extra={"cep": key},
        )

        failures: List[Failure] = []
        executor = ThreadPoolExecutor(
            max_workers=len(self.providers),
            thread_name_prefix='race',
        )
        try:
            with create_scope(self.timeout) as scope:
                successes, failed = make_channels(scope, len(self.providers))

                for provider in self.providers:
                    executor.submit(self._run_provider, provider, scope, key, successes, failed)

                outcome = self._select(scope, key, successes, failed, failures, start)
        finally:
            # Stragglers see the fired scope and exit on their own
            executor.shutdown(wait=False)

        return outcome

    def _select(
        self,
        scope: DeadlineScope,
        key: LookupKey,
        successes: OutcomeChannel,
        failed: OutcomeChannel,
        failures: List[Failure],
        start: float,
    ) -> RaceOutcome:
        state = RaceState.RACING

        while True:
            event, item = self._wait(
                scope,
                successes,
                failed,
                failures,
                accept_failure=(state == RaceState.RACING),
            )

            if event == _SUCCESS:
                scope.cancel('winner')
                elapsed = _elapsed_ms(start)
                logger.info(
                    f"Winner: {item.provider_name}",
                    extra={"cep": key, "provider": item.source_tag, "duration_ms": elapsed},
                )
                return RaceOutcome.won(item, failures, elapsed)

            if event == _FAILURE:
                failures.append(item)
                state = RaceState.ONE_FAILURE_WAITING
                logger.warning(
                    f"Provider failed, waiting for the others: {item.message}",
                    extra={"cep": key, "provider": item.provider_name, "kind": item.kind.value},
                )
                continue

            reason = 'deadline' if event == _EXPIRED else 'all_failed'
            elapsed = _elapsed_ms(start)
            logger.error(
                "Race exhausted: deadline passed" if reason == 'deadline' else "Race exhausted: every provider failed",
                extra={"cep": key, "reason": reason, "state": state.value, "duration_ms": elapsed},
            )
            return RaceOutcome.exhausted(reason, failures, elapsed)

    def _wait(
        self,
        scope: DeadlineScope,
        successes: OutcomeChannel,
        failed: OutcomeChannel,
        failures: List[Failure],
        accept_failure: bool,
    ) -> Tuple[str, Optional[object]]:
        """
        Block until something the current state cares about happens.

        Outcomes are taken in arrival order across both channels. With
        accept_failure False, pending failures are drained, recorded and
        otherwise ignored.
        """
        total = len(self.providers)

        with scope.condition:
            while True:
                if not accept_failure and len(failures) >= total:
                    return _ALL_FAILED, None

                success_seq = successes.peek_sequence()
                failure_seq = failed.peek_sequence()

                if success_seq is not None and (
                    failure_seq is None or not accept_failure or success_seq < failure_seq
                ):
                    return _SUCCESS, successes.poll()

                if failure_seq is not None:
                    failure = failed.poll()
                    if accept_failure:
                        return _FAILURE, failure
                    failures.append(failure)
                    logger.debug(
                        f"Dropping additional failure: {failure.message}",
                        extra={"provider": failure.provider_name, "kind": failure.kind.value},
                    )
                    continue

                if not scope.is_live():
                    return _EXPIRED, None

                scope.condition.wait(scope.remaining())

    def _run_provider(
        self,
        provider: Provider,
        scope: DeadlineScope,
        key: LookupKey,
        successes: OutcomeChannel,
        failed: OutcomeChannel,
    ) -> None:
        """Worker body: fetch once, then try to hand the outcome over."""
        if not scope.is_live():
            logger.debug("Scope fired before start", extra={"provider": provider.name})
            return

        start = time.monotonic()
        try:
            outcome = provider.fetch(scope, key)
        except Exception as e:
            logger.exception(
                "Provider raised unexpectedly",
                extra={"provider": provider.name, "error": str(e)},
            )
            outcome = provider.failure(f"unexpected error: {e}", FailureKind.INTERNAL)

        if outcome is None:
            outcome = provider.failure("provider returned no outcome", FailureKind.INTERNAL)

        channel = successes if isinstance(outcome, CEPResult) else failed
        delivered = channel.offer(outcome)

        logger.debug(
            "Provider finished" if delivered else "Provider finished after the race was decided",
            extra={"provider": provider.name, "duration_ms": _elapsed_ms(start)},
        )


def settle(outcome: RaceOutcome) -> CEPResult:
    """Return the winner of `outcome` or raise Exhausted."""
    if outcome.is_winner:
        return outcome.winner
    raise Exhausted(outcome)


def race(key: LookupKey, providers: Sequence[Provider], timeout: float = DEFAULT_TIMEOUT) -> CEPResult:
    """
    Query every provider concurrently and return the first success.

    Args:
        key: The lookup key (a CEP)
        providers: Providers to race
        timeout: Time budget in seconds

    Returns:
        The winning CEPResult

    Raises:
        Exhausted: the deadline passed or every provider failed
    """
    return settle(RaceCoordinator(providers, timeout).run(key))


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
