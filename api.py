#!/usr/bin/env python3
"""
Flask API for CEP race lookups
Run with: python api.py
"""

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from dotenv import load_dotenv

from cep_lookup import RaceCoordinator, Exhausted, InvalidKey, settle
from cep_lookup.settings import Settings, clamp_timeout
from cep_lookup.sources import build_providers, validate_cep
from monitoring.metrics import track_race, get_metrics_summary

from logging_config import get_logger
logger = get_logger("api")

API_VERSION = '2026-10-19-race-v1'

load_dotenv()
settings = Settings.from_env()

app = Flask(__name__)
CORS(app)

limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[settings.rate_limit] if settings.rate_limit else [],
    storage_uri="memory://",
    strategy="fixed-window",
    enabled=bool(settings.rate_limit),
)


@app.errorhandler(429)
def ratelimit_handler(e):
    return jsonify({
        'error': 'Rate limit exceeded',
        'message': f'You have exceeded the limit of {settings.rate_limit}.',
        'retry_after': e.description
    }), 429


def get_providers():
    """Providers for a new race; tests put fakes in app.config['PROVIDERS']."""
    configured = app.config.get('PROVIDERS')
    if configured is not None:
        return list(configured)
    return build_providers(settings.providers, urls=settings.provider_urls)


def request_timeout() -> float:
    """
    Per-request timeout override from ?timeout=, clamped to sane bounds.

    Raises:
        ValueError: for ?timeout=nan
    """
    override = request.args.get('timeout', type=float)
    if override is None:
        return settings.timeout
    return clamp_timeout(override)


@app.route('/api/version')
@limiter.exempt
def version():
    return jsonify({'version': API_VERSION})


@app.route('/api/health', methods=['GET'])
@limiter.exempt
def health():
    """Health check endpoint."""
    return jsonify({
        'status': 'ok',
        'version': API_VERSION,
        'providers': settings.providers,
        'timeout': settings.timeout,
    })


@app.route('/api/metrics', methods=['GET'])
@limiter.exempt
def metrics():
    return jsonify(get_metrics_summary())


@app.route('/api/cep/<cep>', methods=['GET'])
def lookup_cep(cep):
    """
    Race all configured providers for a CEP.

    200 with the winner, 400 for a malformed CEP or timeout, 502 when every provider
    failed, 504 when nobody answered before the deadline.
    """
    try:
        key = validate_cep(cep)
    except InvalidKey as e:
        return jsonify({'error': str(e)}), 400

    try:
        timeout = request_timeout()
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    outcome = RaceCoordinator(get_providers(), timeout).run(key)
    track_race(outcome)

    try:
        result = settle(outcome)
    except Exhausted as e:
        status = 504 if e.timed_out else 502
        if outcome.reason == 'no_providers':
            status = 503
        logger.error(f"Lookup failed: {e}", extra={"cep": key, "reason": outcome.reason})
        return jsonify({'error': str(e), **outcome.to_dict()}), status

    return jsonify({
        'result': result.to_dict(),
        'elapsed_ms': outcome.elapsed_ms,
        'failures': [f.to_dict() for f in outcome.failures],
    })


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5001, debug=False, threaded=True)
