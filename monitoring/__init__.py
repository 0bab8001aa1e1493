"""
Monitoring module for the CEP race lookup.

Provides race metrics tracking and summaries.
"""

from .metrics import (
    track_race,
    get_metrics_summary,
    get_current_metrics,
    flush_metrics,
    reset_metrics,
    RaceTimer,
)

__all__ = [
    'track_race',
    'get_metrics_summary',
    'get_current_metrics',
    'flush_metrics',
    'reset_metrics',
    'RaceTimer',
]
