#!/usr/bin/env python3
"""
Provider adapter tests against a fake requests session.

Run: pytest tests/test_sources.py -v
"""

from unittest.mock import Mock

import pytest
import requests

from cep_lookup.deadline import create_scope
from cep_lookup.errors import InvalidKey
from cep_lookup.interfaces import CEPResult, Failure, FailureKind
from cep_lookup.sources import (
    BrasilAPIProvider,
    ViaCEPProvider,
    build_providers,
    default_providers,
    get_provider,
    normalize_cep,
    validate_cep,
)

BRASILAPI_PAYLOAD = {
    "cep": "01001000",
    "state": "SP",
    "city": "São Paulo",
    "neighborhood": "Sé",
    "street": "Praça da Sé",
    "service": "open-cep",
}

VIACEP_PAYLOAD = {
    "cep": "01001-000",
    "logradouro": "Praça da Sé",
    "complemento": "lado ímpar",
    "bairro": "Sé",
    "localidade": "São Paulo",
    "uf": "SP",
    "ibge": "3550308",
    "gia": "1004",
    "ddd": "11",
    "siafi": "7107",
}


def fake_session(status_code=200, payload=None, json_error=None, get_error=None):
    response = Mock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload

    session = Mock()
    if get_error is not None:
        session.get.side_effect = get_error
    else:
        session.get.return_value = response
    return session


@pytest.fixture
def scope():
    s = create_scope(5.0)
    yield s
    s.cancel()


class TestBrasilAPI:

    def test_success(self, scope):
        session = fake_session(payload=BRASILAPI_PAYLOAD)
        provider = BrasilAPIProvider(session=session)

        result = provider.fetch(scope, '01001-000')

        assert result == CEPResult(
            provider_name='Brasil API',
            source_tag='brasilapi',
            cep='01001000',
            street='Praça da Sé',
            neighborhood='Sé',
            city='São Paulo',
            state='SP',
        )
        url = session.get.call_args[0][0]
        assert url == 'https://brasilapi.com.br/api/cep/v1/01001000'
        assert 0 < session.get.call_args[1]['timeout'] <= 5.0

    def test_404_is_not_found(self, scope):
        provider = BrasilAPIProvider(session=fake_session(status_code=404, payload={}))

        failure = provider.fetch(scope, '99999999')

        assert isinstance(failure, Failure)
        assert failure.kind == FailureKind.NOT_FOUND
        assert failure.provider_name == 'Brasil API'

    def test_server_error_is_protocol_failure(self, scope):
        failure = BrasilAPIProvider(session=fake_session(status_code=500)).fetch(scope, '01001000')

        assert failure.kind == FailureKind.PROTOCOL
        assert failure.message == 'status 500'

    def test_connection_error_is_transport_failure(self, scope):
        session = fake_session(get_error=requests.ConnectionError("refused"))

        failure = BrasilAPIProvider(session=session).fetch(scope, '01001000')

        assert failure.kind == FailureKind.TRANSPORT
        assert 'refused' in failure.message

    def test_timeout_is_transport_failure(self, scope):
        session = fake_session(get_error=requests.Timeout("read timed out"))

        failure = BrasilAPIProvider(session=session).fetch(scope, '01001000')

        assert failure.kind == FailureKind.TRANSPORT

    def test_bad_json_is_decode_failure(self, scope):
        session = fake_session(json_error=ValueError("Expecting value"))

        failure = BrasilAPIProvider(session=session).fetch(scope, '01001000')

        assert failure.kind == FailureKind.DECODE
        assert 'parse error' in failure.message

    def test_missing_field_is_decode_failure(self, scope):
        payload = dict(BRASILAPI_PAYLOAD)
        del payload['city']

        failure = BrasilAPIProvider(session=fake_session(payload=payload)).fetch(scope, '01001000')

        assert failure.kind == FailureKind.DECODE
        assert "'city'" in failure.message

    def test_list_payload_is_decode_failure(self, scope):
        failure = BrasilAPIProvider(session=fake_session(payload=[])).fetch(scope, '01001000')

        assert failure.kind == FailureKind.DECODE

    def test_fired_scope_skips_request(self):
        scope = create_scope(5.0)
        scope.cancel()
        session = fake_session(payload=BRASILAPI_PAYLOAD)

        failure = BrasilAPIProvider(session=session).fetch(scope, '01001000')

        assert failure.kind == FailureKind.CANCELLED
        session.get.assert_not_called()

    def test_scope_fired_during_request(self, scope):
        session = fake_session(payload=BRASILAPI_PAYLOAD)
        response = session.get.return_value

        def cancel_then_respond(*args, **kwargs):
            scope.cancel()
            return response

        session.get.side_effect = cancel_then_respond

        failure = BrasilAPIProvider(session=session).fetch(scope, '01001000')

        assert failure.kind == FailureKind.CANCELLED
        response.close.assert_called_once()

    def test_custom_url(self, scope):
        session = fake_session(payload=BRASILAPI_PAYLOAD)
        provider = BrasilAPIProvider(base_url='http://localhost:9000/cep/{cep}', session=session)

        provider.fetch(scope, '01001000')

        assert session.get.call_args[0][0] == 'http://localhost:9000/cep/01001000'


class TestViaCEP:

    def test_success(self, scope):
        session = fake_session(payload=VIACEP_PAYLOAD)

        result = ViaCEPProvider(session=session).fetch(scope, '01001000')

        assert result.provider_name == 'ViaCEP'
        assert result.source_tag == 'viacep'
        assert result.cep == '01001-000'
        assert result.street == 'Praça da Sé'
        assert result.neighborhood == 'Sé'
        assert result.city == 'São Paulo'
        assert result.state == 'SP'
        assert session.get.call_args[0][0] == 'https://viacep.com.br/ws/01001000/json/'

    @pytest.mark.parametrize("payload", [{"erro": True}, {"erro": "true"}, {"cep": ""}])
    def test_not_found(self, scope, payload):
        failure = ViaCEPProvider(session=fake_session(payload=payload)).fetch(scope, '99999999')

        assert failure.kind == FailureKind.NOT_FOUND

    def test_bad_request_is_protocol_failure(self, scope):
        failure = ViaCEPProvider(session=fake_session(status_code=400)).fetch(scope, '123')

        assert failure.kind == FailureKind.PROTOCOL

    def test_404_is_protocol_failure(self, scope):
        # ViaCEP signals unknown CEPs in the body, so 404 is unexpected
        failure = ViaCEPProvider(session=fake_session(status_code=404)).fetch(scope, '01001000')

        assert failure.kind == FailureKind.PROTOCOL


class TestRegistry:

    def test_default_providers(self):
        providers = default_providers()

        assert [p.source_tag for p in providers] == ['brasilapi', 'viacep']

    def test_get_provider_is_case_insensitive(self):
        assert isinstance(get_provider(' ViaCEP '), ViaCEPProvider)

    def test_unknown_provider(self):
        with pytest.raises(KeyError):
            get_provider('correios')

    def test_url_overrides(self):
        providers = build_providers(['viacep'], urls={'viacep': 'http://mirror/{cep}'})

        assert providers[0].url_for('01001-000') == 'http://mirror/01001000'


class TestKeyValidation:

    def test_normalize(self):
        assert normalize_cep('01001-000') == '01001000'
        assert normalize_cep(' 01.001-000 ') == '01001000'

    def test_validate(self):
        assert validate_cep('13335-320') == '13335320'

    @pytest.mark.parametrize("key", ['', '123', '0100100a', '010010000'])
    def test_invalid(self, key):
        with pytest.raises(InvalidKey):
            validate_cep(key)
