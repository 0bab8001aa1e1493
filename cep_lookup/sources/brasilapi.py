"""
Brasil API provider.

Response schema (200):
    {"cep": "01001000", "state": "SP", "city": "São Paulo",
     "neighborhood": "Sé", "street": "Praça da Sé", "service": "..."}

Unknown CEPs come back as 404.
"""

from typing import Any, Dict

from ..interfaces import CEPResult
from .base import HTTPProvider


class BrasilAPIProvider(HTTPProvider):
    """Query brasilapi.com.br for a CEP."""

    not_found_status = 404

    @property
    def name(self) -> str:
        return "Brasil API"

    @property
    def source_tag(self) -> str:
        return "brasilapi"

    @property
    def default_url(self) -> str:
        return "https://brasilapi.com.br/api/cep/v1/{cep}"

    def parse(self, payload: Dict[str, Any]) -> CEPResult:
        return CEPResult(
            provider_name=self.name,
            source_tag=self.source_tag,
            cep=self.require(payload, 'cep'),
            street=payload.get('street') or '',
            neighborhood=payload.get('neighborhood') or '',
            city=self.require(payload, 'city'),
            state=self.require(payload, 'state'),
        )
