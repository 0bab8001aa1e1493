#!/usr/bin/env python3
"""
Command-line entry point tests.

Run: pytest tests/test_cli.py -v
"""

import json

import pytest

import lookup_cep
from monitoring import metrics


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ('CEP_TIMEOUT_SECONDS', 'CEP_PROVIDERS', 'BRASILAPI_URL', 'VIACEP_URL'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(lookup_cep, 'load_dotenv', lambda: None)
    metrics.reset_metrics()
    yield
    metrics.reset_metrics()


@pytest.fixture
def use_providers(monkeypatch):
    """Route the CLI to scripted providers built fresh per race."""
    def install(factory):
        monkeypatch.setattr(lookup_cep, 'build_providers', lambda tags, urls=None: factory())
    return install


def test_prints_winner(capsys, use_providers, make_provider):
    use_providers(lambda: [make_provider('p1', delay=0.05), make_provider('p2', delay=0.01)])

    status = lookup_cep.main(['01001-000'])

    out = capsys.readouterr().out
    assert status == 0
    assert 'Looking up CEP: 01001000' in out
    assert out.count('Winning API: Fake p2') == 1


def test_default_cep(capsys, use_providers, make_provider):
    use_providers(lambda: [make_provider('p1')])

    assert lookup_cep.main([]) == 0
    assert 'Looking up CEP: 01001000' in capsys.readouterr().out


def test_json_output(capsys, use_providers, make_provider):
    use_providers(lambda: [make_provider('p1')])

    status = lookup_cep.main(['01001000', '--json'])

    line = capsys.readouterr().out.strip()
    data = json.loads(line)
    assert status == 0
    assert data['cep'] == '01001000'
    assert data['winner']['source_tag'] == 'p1'


def test_timeout_is_fatal(capsys, use_providers, make_provider):
    use_providers(lambda: [make_provider('p1', delay=0.5)])

    status = lookup_cep.main(['01001000', '13335320', '--timeout', '0.1'])

    captured = capsys.readouterr()
    assert status == 1
    assert 'Timeout: no provider answered in time' in captured.err
    assert '13335320' not in captured.out


def test_keep_going_after_exhaustion(capsys, use_providers, make_provider):
    use_providers(lambda: [make_provider('p1', behavior='fail')])

    status = lookup_cep.main(['01001000', '13335320', '--keep-going'])

    captured = capsys.readouterr()
    assert status == 1
    assert captured.err.count('All providers failed') == 2
    assert captured.out.count('Looking up CEP') == 2


def test_reads_file(tmp_path, capsys, use_providers, make_provider):
    use_providers(lambda: [make_provider('p1')])
    cep_file = tmp_path / 'ceps.txt'
    cep_file.write_text("# header\n01001000\n\n13335-320\n")

    status = lookup_cep.main(['--file', str(cep_file), '--json'])

    lines = capsys.readouterr().out.strip().splitlines()
    assert status == 0
    assert [json.loads(l)['cep'] for l in lines] == ['01001000', '13335320']


def test_invalid_cep(capsys):
    assert lookup_cep.main(['12']) == 2
    assert 'invalid CEP' in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    status = lookup_cep.main(['--file', str(tmp_path / 'missing.txt')])

    assert status == 2
    assert 'Error:' in capsys.readouterr().err


@pytest.mark.parametrize("timeout", ['nan', '0', '-1'])
def test_unusable_timeout(capsys, timeout):
    assert lookup_cep.main(['01001000', '--timeout', timeout]) == 2
    assert '--timeout must be a positive number' in capsys.readouterr().err


def test_nan_timeout_from_env(monkeypatch, capsys):
    monkeypatch.setenv('CEP_TIMEOUT_SECONDS', 'nan')

    assert lookup_cep.main(['01001000']) == 2
    assert 'CEP_TIMEOUT_SECONDS' in capsys.readouterr().err


def test_unknown_provider(capsys):
    assert lookup_cep.main(['01001000', '--providers', 'correios']) == 2
    assert 'unknown providers' in capsys.readouterr().err


def test_races_are_tracked(use_providers, make_provider):
    use_providers(lambda: [make_provider('p1')])

    lookup_cep.main(['01001000', '--json'])

    assert metrics.get_current_metrics()['won_races'] == 1
