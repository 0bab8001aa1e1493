"""
Metrics tracking for CEP races.

Tracks per time window:
- Race latency
- Which provider wins
- Failures by kind and provider
- Exhaustion rate (deadline vs. all failed)

Usage:
    from monitoring.metrics import track_race, get_metrics_summary

    outcome = coordinator.run(cep)
    track_race(outcome)

    summary = get_metrics_summary()
"""

import json
import os
import time
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional
from collections import defaultdict
from dataclasses import dataclass, field

from logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class MetricsBucket:
    """Holds metrics for a time window."""
    window_start: str
    window_end: str

    # Counts
    total_races: int = 0
    won_races: int = 0
    exhausted_races: int = 0

    wins_by_provider: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    failures_by_kind: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    failures_by_provider: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    exhausted_by_reason: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Latency (in ms)
    latencies: List[float] = field(default_factory=list)

    errors: List[Dict] = field(default_factory=list)


class MetricsCollector:
    """
    Collects and aggregates race metrics in memory.

    Thread-safe; one module-level instance backs the helper functions.
    """

    def __init__(self, bucket_duration_minutes: int = 5, max_historical_buckets: int = 288):
        self._metrics_lock = threading.Lock()
        self._bucket_duration_minutes = bucket_duration_minutes
        self._max_historical_buckets = max_historical_buckets  # 24 hours at 5-min intervals
        self._current_bucket = self._create_bucket()
        self._historical_buckets: List[MetricsBucket] = []

    def _create_bucket(self) -> MetricsBucket:
        """Create a new metrics bucket for the current time window."""
        now = datetime.now()
        window_start = now.replace(second=0, microsecond=0)
        window_end = window_start + timedelta(minutes=self._bucket_duration_minutes)

        return MetricsBucket(
            window_start=window_start.isoformat(),
            window_end=window_end.isoformat()
        )

    def _maybe_rotate_bucket(self):
        """Rotate to a new bucket if the current one has expired."""
        now = datetime.now()
        window_end = datetime.fromisoformat(self._current_bucket.window_end)

        if now >= window_end:
            self._historical_buckets.append(self._current_bucket)

            if len(self._historical_buckets) > self._max_historical_buckets:
                self._historical_buckets = self._historical_buckets[-self._max_historical_buckets:]

            self._current_bucket = self._create_bucket()

    def track_race(self, outcome, latency_ms: Optional[float] = None):
        """
        Track a finished race.

        Args:
            outcome: The RaceOutcome returned by the coordinator
            latency_ms: Overrides outcome.elapsed_ms when given
        """
        latency = outcome.elapsed_ms if latency_ms is None else latency_ms

        with self._metrics_lock:
            self._maybe_rotate_bucket()
            bucket = self._current_bucket

            bucket.total_races += 1
            bucket.latencies.append(latency)

            for failure in outcome.failures:
                bucket.failures_by_kind[failure.kind.value] += 1
                bucket.failures_by_provider[failure.provider_name] += 1

            if outcome.is_winner:
                bucket.won_races += 1
                bucket.wins_by_provider[outcome.winner.source_tag] += 1
            else:
                bucket.exhausted_races += 1
                bucket.exhausted_by_reason[outcome.reason or 'unknown'] += 1
                bucket.errors.append({
                    'reason': outcome.reason,
                    'failures': [str(f) for f in outcome.failures],
                    'timestamp': datetime.now().isoformat()
                })

    def get_current_metrics(self) -> Dict:
        """Get metrics for the current time window."""
        with self._metrics_lock:
            self._maybe_rotate_bucket()
            return self._bucket_to_dict(self._current_bucket)

    def get_historical_metrics(self, hours: int = 1) -> List[Dict]:
        """Get historical metrics for the specified number of hours."""
        with self._metrics_lock:
            cutoff = datetime.now() - timedelta(hours=hours)

            result = []
            for bucket in self._historical_buckets:
                window_start = datetime.fromisoformat(bucket.window_start)
                if window_start >= cutoff:
                    result.append(self._bucket_to_dict(bucket))

            return result

    def _bucket_to_dict(self, bucket: MetricsBucket) -> Dict:
        """Convert a bucket to a dictionary with computed statistics."""
        latencies = sorted(bucket.latencies)

        return {
            'window_start': bucket.window_start,
            'window_end': bucket.window_end,
            'total_races': bucket.total_races,
            'won_races': bucket.won_races,
            'exhausted_races': bucket.exhausted_races,
            'success_rate': (
                bucket.won_races / bucket.total_races * 100
                if bucket.total_races > 0 else 0
            ),
            'wins_by_provider': dict(bucket.wins_by_provider),
            'failures_by_kind': dict(bucket.failures_by_kind),
            'failures_by_provider': dict(bucket.failures_by_provider),
            'exhausted_by_reason': dict(bucket.exhausted_by_reason),
            'latency': {
                'avg_ms': sum(latencies) / len(latencies) if latencies else 0,
                'p50_ms': latencies[len(latencies) // 2] if latencies else 0,
                'p95_ms': latencies[int(len(latencies) * 0.95)] if len(latencies) > 1 else 0,
                'max_ms': latencies[-1] if latencies else 0,
            },
            'error_count': len(bucket.errors),
            'recent_errors': bucket.errors[-5:],
        }

    def get_summary(self) -> Dict:
        """Get a summary of all metrics."""
        current = self.get_current_metrics()
        historical = self.get_historical_metrics(hours=1)

        total_races = sum(h['total_races'] for h in historical) + current['total_races']
        total_won = sum(h['won_races'] for h in historical) + current['won_races']

        # Raw latencies aren't kept for history, so average the averages
        avg_latencies = [h['latency']['avg_ms'] for h in historical + [current] if h['latency']['avg_ms'] > 0]

        return {
            'current_window': current,
            'last_hour': {
                'total_races': total_races,
                'won_races': total_won,
                'success_rate': total_won / total_races * 100 if total_races > 0 else 0,
                'avg_latency_ms': sum(avg_latencies) / len(avg_latencies) if avg_latencies else 0,
            },
            'buckets_count': len(historical) + 1,
        }

    def flush_to_disk(self, metrics_dir: Path) -> Path:
        """Append the current bucket to a daily JSON file in `metrics_dir`."""
        with self._metrics_lock:
            metrics_dir.mkdir(parents=True, exist_ok=True)
            metrics_file = metrics_dir / f"metrics_{datetime.now().strftime('%Y%m%d')}.json"

            existing = []
            if metrics_file.exists():
                try:
                    with open(metrics_file, 'r') as f:
                        existing = json.load(f)
                except json.JSONDecodeError:
                    logger.warning(f"Ignoring corrupt metrics file {metrics_file}")

            existing.append(self._bucket_to_dict(self._current_bucket))

            with open(metrics_file, 'w') as f:
                json.dump(existing, f, indent=2)

        logger.info(f"Flushed metrics to {metrics_file}")
        return metrics_file

    def reset(self):
        """Drop all collected metrics."""
        with self._metrics_lock:
            self._current_bucket = self._create_bucket()
            self._historical_buckets = []


# Global collector instance
_collector = MetricsCollector()


def track_race(outcome, latency_ms: Optional[float] = None):
    """
    Track a finished race.

    Example:
        outcome = RaceCoordinator(providers).run(cep)
        track_race(outcome)
    """
    _collector.track_race(outcome, latency_ms)


def get_metrics_summary() -> Dict:
    """Get a summary of current metrics."""
    return _collector.get_summary()


def get_current_metrics() -> Dict:
    """Get metrics for the current time window."""
    return _collector.get_current_metrics()


def flush_metrics(metrics_dir: Optional[Path] = None) -> Path:
    """Flush metrics to disk (METRICS_DIR, or ./data/metrics)."""
    if metrics_dir is None:
        metrics_dir = Path(os.environ.get('METRICS_DIR', Path.cwd() / 'data' / 'metrics'))
    return _collector.flush_to_disk(Path(metrics_dir))


def reset_metrics():
    _collector.reset()


class RaceTimer:
    """
    Context manager for timing and tracking races.

    Wall-clock time of the block is recorded, which includes presenting
    the result when that happens inside the block.

    Example:
        with RaceTimer() as timer:
            timer.set_outcome(coordinator.run(cep))
    """

    def __init__(self):
        self.start_time = None
        self.outcome = None

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.outcome is not None:
            latency_ms = (time.monotonic() - self.start_time) * 1000
            track_race(self.outcome, latency_ms)
        return False  # Don't suppress exceptions

    def set_outcome(self, outcome):
        self.outcome = outcome
