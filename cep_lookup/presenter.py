"""
Rendering of a race winner for terminal output.
"""

import sys
from typing import Optional, TextIO

from .interfaces import CEPResult

RULE = "============================="


def format_result(result: CEPResult) -> str:
    """Render the winning result as a text block."""
    lines = [
        "CEP found",
        RULE,
        f"Winning API: {result.provider_name}",
        f"CEP: {result.cep}",
        f"Street: {result.street}",
        f"Neighborhood: {result.neighborhood}",
        f"City: {result.city}",
        f"State: {result.state}",
        f"Origin: {result.source_tag}",
        RULE,
    ]
    return "\n".join(lines)


def present(result: CEPResult, stream: Optional[TextIO] = None) -> None:
    """Write the winner to `stream` (stdout by default)."""
    stream = stream or sys.stdout
    stream.write(format_result(result) + "\n")
    stream.flush()
