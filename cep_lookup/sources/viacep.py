"""
ViaCEP provider.

Response schema (200):
    {"cep": "01001-000", "logradouro": "Praça da Sé", "complemento": "...",
     "bairro": "Sé", "localidade": "São Paulo", "uf": "SP", "ibge": "...",
     "gia": "...", "ddd": "11", "siafi": "..."}

Unknown CEPs still come back as 200, with {"erro": true}.
"""

from typing import Any, Dict

from ..errors import NotFound
from ..interfaces import CEPResult
from .base import HTTPProvider


class ViaCEPProvider(HTTPProvider):
    """Query viacep.com.br for a CEP."""

    @property
    def name(self) -> str:
        return "ViaCEP"

    @property
    def source_tag(self) -> str:
        return "viacep"

    @property
    def default_url(self) -> str:
        return "https://viacep.com.br/ws/{cep}/json/"

    def parse(self, payload: Dict[str, Any]) -> CEPResult:
        # 'erro' is a bool on current ViaCEP and the string "true" on older deployments
        if payload.get('erro') in (True, 'true') or not payload.get('cep'):
            raise NotFound("CEP not found")

        return CEPResult(
            provider_name=self.name,
            source_tag=self.source_tag,
            cep=self.require(payload, 'cep'),
            street=payload.get('logradouro') or '',
            neighborhood=payload.get('bairro') or '',
            city=self.require(payload, 'localidade'),
            state=self.require(payload, 'uf'),
        )
