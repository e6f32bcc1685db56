"""Output mode selection for envelopes.

The CLI renders a ResponseEnvelope for humans (Rich), for scripts
(``--quiet``), or for machines (``--json``, the same dict the MCP
transport returns).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from actionctl.services.result import ResponseEnvelope


@dataclass(frozen=True)
class OutputSettings:
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False


def format_envelope(
    envelope: ResponseEnvelope,
    label: str,
    *,
    settings: OutputSettings | None = None,
) -> str:
    """Format *envelope* according to *settings* (JSON, quiet, or Rich)."""
    settings = settings or OutputSettings()
    if settings.json_output:
        return json.dumps(envelope.to_dict(), indent=2, ensure_ascii=False, default=str)

    from actionctl.output.renderers import render_envelope, render_quiet

    if settings.quiet:
        return render_quiet(envelope, label)
    return render_envelope(envelope, label, verbose=settings.verbose)
