"""
Provider implementations for the CEP race lookup.
"""

from typing import Dict, Iterable, List, Optional, Type

import requests

from .base import HTTPProvider, normalize_cep, validate_cep
from .brasilapi import BrasilAPIProvider
from .viacep import ViaCEPProvider

PROVIDERS: Dict[str, Type[HTTPProvider]] = {
    'brasilapi': BrasilAPIProvider,
    'viacep': ViaCEPProvider,
}

DEFAULT_PROVIDERS = ('brasilapi', 'viacep')


def get_provider(
    tag: str,
    base_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> HTTPProvider:
    """
    Build a provider by its source tag.

    Raises:
        KeyError: for an unknown tag
    """
    key = tag.strip().lower()
    if key not in PROVIDERS:
        raise KeyError(f"unknown provider '{tag}' (known: {', '.join(sorted(PROVIDERS))})")
    return PROVIDERS[key](base_url=base_url, session=session)


def build_providers(
    tags: Iterable[str] = DEFAULT_PROVIDERS,
    urls: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
) -> List[HTTPProvider]:
    """Build providers for the given tags, with optional URL overrides."""
    urls = urls or {}
    return [get_provider(tag, base_url=urls.get(tag.strip().lower()), session=session) for tag in tags]


def default_providers(session: Optional[requests.Session] = None) -> List[HTTPProvider]:
    """Brasil API and ViaCEP with their public endpoints."""
    return build_providers(DEFAULT_PROVIDERS, session=session)


__all__ = [
    'HTTPProvider',
    'BrasilAPIProvider',
    'ViaCEPProvider',
    'PROVIDERS',
    'DEFAULT_PROVIDERS',
    'get_provider',
    'build_providers',
    'default_providers',
    'normalize_cep',
    'validate_cep',
]
