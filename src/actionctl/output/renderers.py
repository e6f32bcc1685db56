"""Rich renderers for ResponseEnvelope.

Successful payloads are rendered by shape: ``{"items": [...]}`` as a
table, dicts as key-value fields, strings (confirmations) verbatim.
Failures show kind, message, field errors, and remediation.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from actionctl.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from actionctl.services.result import DebugInfo, ResponseEnvelope


def render_envelope(envelope: ResponseEnvelope, label: str, *, verbose: bool = False) -> str:
    """Render *envelope* for humans; *label* names the action (``records.get``)."""
    console = create_console()
    if envelope.success:
        _render_success(console, envelope.data, label)
    else:
        _render_error(console, envelope, label)
    if envelope.debug is not None:
        _render_debug(console, envelope.debug, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(envelope: ResponseEnvelope, label: str) -> str:
    """Minimal output: IDs for lists, the message for errors."""
    if not envelope.success:
        message = envelope.error.message if envelope.error else "Unknown error"
        return f"ERROR: {label}: {message}"
    data = envelope.data
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return "\n".join(_item_id(item) for item in data["items"])
    if isinstance(data, str):
        return data
    return f"OK: {label}"


# ── Helpers ───────────────────────────────────────────────────────────


def _item_id(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("id", ""))
    return str(item)


def _status_line(console: Console, label: str) -> None:
    console.print(Text("OK", style="act.ok"), Text(f"  {label}", style="act.action"))


def _field(console: Console, key: str, value: Any, *, indent: int = 2) -> None:
    if isinstance(value, (dict, list)):
        value = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    style = "act.id" if key == "id" or key.endswith("_id") else ""
    console.print(Text(f"{' ' * indent}{key}:", style="act.key"), Text(str(value), style=style))


def _render_success(console: Console, data: Any, label: str) -> None:
    _status_line(console, label)
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        _render_items(console, data)
    elif isinstance(data, dict):
        for key, value in data.items():
            _field(console, key, value)
    elif data is not None:
        console.print(f"  {data}")


def _render_items(console: Console, data: dict[str, Any]) -> None:
    items = data["items"]
    if items and all(isinstance(item, dict) for item in items):
        columns = list(dict.fromkeys(key for item in items for key in item))
        table = Table(show_header=True, pad_edge=False, expand=False)
        for column in columns:
            table.add_column(column, style="act.id" if column == "id" else None)
        for item in items:
            table.add_row(*(_cell(item.get(column)) for column in columns))
        console.print(table)
    else:
        for item in items:
            console.print(f"  {item}")
    for key, value in data.items():
        if key != "items":
            _field(console, key, value)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)


def _render_error(console: Console, envelope: ResponseEnvelope, label: str) -> None:
    err = envelope.error
    if err is None:
        return
    console.print(
        Text("ERROR", style="act.error"),
        Text(f"  {label}", style="act.action"),
        Text(f"  [{err.kind.value}]", style="act.kind"),
    )
    console.print(f"  {err.message}", markup=False)
    for field_error in err.field_errors:
        console.print(f"    - {field_error.path or '<input>'}: {field_error.message}", markup=False)
    if err.allowed_actions:
        _field(console, "allowed", ", ".join(err.allowed_actions))
    if err.remediation:
        console.print(Text(f"  hint: {err.remediation}", style="act.hint"))


def _render_debug(console: Console, debug: DebugInfo, *, verbose: bool) -> None:
    console.print()
    console.print(Text("  debug:", style="act.key"))
    for line in debug.trace:
        console.print(Text(f"    {line}", style="act.trace"))
    total = debug.performance.get("totalMs")
    if total is not None:
        _field(console, "totalMs", total, indent=4)
    if verbose:
        for stage, duration in debug.performance.get("stageDurations", {}).items():
            _field(console, f"stage.{stage}", duration, indent=4)
        for key, value in debug.context.items():
            _field(console, key, value, indent=4)
