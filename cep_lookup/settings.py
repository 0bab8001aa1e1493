"""
Environment-driven settings for the CLI and HTTP entry points.

The race core never reads the environment; callers pass providers and
timeouts explicitly. Only the outer surfaces build a Settings.
"""

import math
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .race import DEFAULT_TIMEOUT
from .sources import DEFAULT_PROVIDERS, PROVIDERS

# Bounds for per-request timeout overrides
MIN_TIMEOUT = 0.05
MAX_TIMEOUT = 10.0


@dataclass
class Settings:
    timeout: float = DEFAULT_TIMEOUT
    providers: List[str] = field(default_factory=lambda: list(DEFAULT_PROVIDERS))
    provider_urls: Dict[str, str] = field(default_factory=dict)
    rate_limit: Optional[str] = "500 per day"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read settings from environment variables.

        CEP_TIMEOUT_SECONDS, CEP_PROVIDERS, BRASILAPI_URL, VIACEP_URL,
        CEP_RATE_LIMIT (empty string disables rate limiting).
        """
        env = os.environ if environ is None else environ

        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get('CEP_TIMEOUT_SECONDS')
        if raw_timeout:
            try:
                timeout = clamp_timeout(float(raw_timeout))
            except ValueError:
                raise ValueError(f"CEP_TIMEOUT_SECONDS must be a number, got {raw_timeout!r}")

        providers = parse_provider_list(env.get('CEP_PROVIDERS', ''))

        urls = {}
        for tag in PROVIDERS:
            url = env.get(f'{tag.upper()}_URL')
            if url:
                urls[tag] = url

        rate_limit = env.get('CEP_RATE_LIMIT', cls.rate_limit)

        return cls(
            timeout=timeout,
            providers=providers,
            provider_urls=urls,
            rate_limit=rate_limit or None,
        )


def parse_provider_list(raw: str) -> List[str]:
    """
    Parse a comma-separated provider list; empty means the defaults.

    Raises:
        ValueError: for unknown provider tags
    """
    tags = [t.strip().lower() for t in (raw or '').split(',') if t.strip()]
    if not tags:
        return list(DEFAULT_PROVIDERS)

    unknown = [t for t in tags if t not in PROVIDERS]
    if unknown:
        raise ValueError(f"unknown providers: {', '.join(unknown)} (known: {', '.join(sorted(PROVIDERS))})")
    return tags


def clamp_timeout(value: float) -> float:
    """
    Clamp a timeout to MIN_TIMEOUT..MAX_TIMEOUT.

    Raises:
        ValueError: for NaN, which compares false against both bounds
    """
    if math.isnan(value):
        raise ValueError("timeout must be a number, got nan")
    return min(max(value, MIN_TIMEOUT), MAX_TIMEOUT)
