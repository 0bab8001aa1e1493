#!/usr/bin/env python3
"""
Look up Brazilian CEPs by racing Brasil API against ViaCEP.

Usage:
    python lookup_cep.py                          # looks up 01001000
    python lookup_cep.py 01001-000 13335320
    python lookup_cep.py 01001000 --timeout 0.5 --providers viacep
    python lookup_cep.py --file ceps.txt --json --keep-going

Exit status:
    0  every lookup produced a winner
    1  a race was exhausted (timeout or every provider failed)
    2  bad arguments, unreadable --file or malformed CEP
"""

import argparse
import json
import math
import sys
from typing import List, Optional

from dotenv import load_dotenv

from cep_lookup import RaceCoordinator, Exhausted, InvalidKey, settle
from cep_lookup.presenter import present
from cep_lookup.settings import Settings, parse_provider_list
from cep_lookup.sources import build_providers, validate_cep
from monitoring.metrics import RaceTimer

DEFAULT_CEP = "01001000"  # Praça da Sé, São Paulo


def read_ceps(args) -> List[str]:
    """Collect CEPs from positional arguments and --file."""
    ceps = list(args.ceps)
    if args.file:
        with open(args.file, 'r') as f:
            ceps.extend(line.strip() for line in f if line.strip() and not line.startswith('#'))
    return ceps or [DEFAULT_CEP]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Race CEP providers and print the fastest answer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python lookup_cep.py 01001000
  python lookup_cep.py 01001000 --providers brasilapi,viacep --timeout 1
  CEP_TIMEOUT_SECONDS=2 python lookup_cep.py --file ceps.txt --json
        """
    )
    parser.add_argument('ceps', nargs='*', help='CEPs to look up (default: %s)' % DEFAULT_CEP)
    parser.add_argument('--file', '-f', help='File with one CEP per line')
    parser.add_argument(
        '--timeout', '-t',
        type=float,
        default=None,
        help='Race timeout in seconds (default: CEP_TIMEOUT_SECONDS or 1.0)'
    )
    parser.add_argument(
        '--providers', '-p',
        default=None,
        help='Comma-separated providers (default: CEP_PROVIDERS or brasilapi,viacep)'
    )
    parser.add_argument('--json', action='store_true', help='Print results as JSON lines')
    parser.add_argument(
        '--keep-going', '-k',
        action='store_true',
        help='Continue with the next CEP after an exhausted race'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        tags = parse_provider_list(args.providers) if args.providers else settings.providers
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    timeout = args.timeout if args.timeout is not None else settings.timeout
    if not math.isfinite(timeout) or timeout <= 0:
        print("Error: --timeout must be a positive number", file=sys.stderr)
        return 2

    try:
        ceps = [validate_cep(c) for c in read_ceps(args)]
    except (InvalidKey, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    status = 0
    for cep in ceps:
        if not args.json:
            print(f"Looking up CEP: {cep}\n")

        providers = build_providers(tags, urls=settings.provider_urls)
        with RaceTimer() as timer:
            outcome = RaceCoordinator(providers, timeout).run(cep)
            timer.set_outcome(outcome)

        try:
            result = settle(outcome)
        except Exhausted as e:
            print(str(e), file=sys.stderr)
            if args.json:
                print(json.dumps({'cep': cep, **outcome.to_dict()}, ensure_ascii=False))
            status = 1
            if not args.keep_going:
                break
            continue

        if args.json:
            print(json.dumps({'cep': cep, **outcome.to_dict()}, ensure_ascii=False))
        else:
            present(result)

    return status


if __name__ == '__main__':
    sys.exit(main())
