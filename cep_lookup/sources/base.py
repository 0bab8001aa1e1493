"""
Shared HTTP plumbing for CEP providers.

Each provider makes exactly one GET per fetch, bounded by the time left in
the race's scope. Connection errors, bad status codes and bad payloads are
raised as provider exceptions here and turned into Failure values in
fetch(); nothing escapes to the worker thread.
"""

import re
from abc import abstractmethod
from typing import Any, Dict, Optional

import requests

from logging_config import get_logger

from ..errors import (
    DecodeFailure,
    InvalidKey,
    NotFound,
    ProtocolFailure,
    ProviderError,
    ScopeExpired,
    TransportFailure,
)
from ..interfaces import CEPResult, FetchOutcome, LookupKey, Provider

logger = get_logger(__name__)

USER_AGENT = "CEPRaceLookup/1.0"

# requests rejects a zero timeout
MIN_REQUEST_TIMEOUT = 0.01


def normalize_cep(key: LookupKey) -> str:
    """Strip everything but digits ('01001-000' -> '01001000')."""
    return re.sub(r'\D', '', key or '')


def validate_cep(key: LookupKey) -> str:
    """
    Normalize and validate a CEP.

    Raises:
        InvalidKey: unless exactly 8 digits remain
    """
    cep = normalize_cep(key)
    if len(cep) != 8:
        raise InvalidKey(f"invalid CEP {key!r}: expected 8 digits")
    return cep


class HTTPProvider(Provider):
    """
    Base class for providers backed by a JSON-over-HTTP endpoint.

    Subclasses supply the URL template and the payload parser.
    """

    # Status code the upstream uses for "no such CEP", if any
    not_found_status: Optional[int] = None

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        """
        Args:
            base_url: URL template with a {cep} placeholder
            session: Optional shared session (tests inject a fake one)
        """
        self.base_url = base_url or self.default_url
        self._session = session

    @property
    @abstractmethod
    def default_url(self) -> str:
        pass

    @abstractmethod
    def parse(self, payload: Dict[str, Any]) -> CEPResult:
        """Map the upstream schema to a CEPResult. Raise DecodeFailure or NotFound."""
        pass

    def url_for(self, key: LookupKey) -> str:
        return self.base_url.format(cep=normalize_cep(key))

    def fetch(self, scope, key: LookupKey) -> FetchOutcome:
        try:
            return self._fetch(scope, key)
        except ProviderError as e:
            logger.debug(
                f"{self.name} failed: {e}",
                extra={"provider": self.source_tag, "kind": e.kind.value},
            )
            return self.failure(str(e), e.kind)

    def _fetch(self, scope, key: LookupKey) -> CEPResult:
        if not scope.is_live():
            raise ScopeExpired("scope fired before the request")

        url = self.url_for(key)
        timeout = max(scope.remaining(), MIN_REQUEST_TIMEOUT)
        response = self._get(url, timeout)

        try:
            if not scope.is_live():
                raise ScopeExpired("scope fired during the request")

            if self.not_found_status is not None and response.status_code == self.not_found_status:
                raise NotFound(f"CEP {normalize_cep(key)} not found")

            if response.status_code != 200:
                raise ProtocolFailure(f"status {response.status_code}", status_code=response.status_code)

            try:
                payload = response.json()
            except ValueError as e:
                raise DecodeFailure(f"parse error: {e}") from e

            if not isinstance(payload, dict):
                raise DecodeFailure(f"unexpected payload type {type(payload).__name__}")

            return self.parse(payload)
        finally:
            response.close()

    def _get(self, url: str, timeout: float) -> requests.Response:
        headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        try:
            if self._session is not None:
                return self._session.get(url, headers=headers, timeout=timeout)
            with requests.Session() as session:
                return session.get(url, headers=headers, timeout=timeout)
        except requests.RequestException as e:
            raise TransportFailure(f"HTTP error: {e}") from e

    @staticmethod
    def require(payload: Dict[str, Any], field: str) -> str:
        """Fetch a string field from the payload or raise DecodeFailure."""
        value = payload.get(field)
        if value is None:
            raise DecodeFailure(f"missing field '{field}'")
        if not isinstance(value, str):
            raise DecodeFailure(f"field '{field}' is not a string")
        return value
