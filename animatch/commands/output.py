"""Command output: a JSON envelope for scripts, plain lines for people."""

from __future__ import annotations

import json
from typing import Any, Callable, Iterable

SCHEMA_VERSION = "v1"

OutputSink = Callable[[str], Any]


def render_envelope(command: str, payload: dict[str, Any]) -> str:
    """Serialize a command payload as one deterministic JSON line.

    Keys are sorted and native titles are written verbatim (not \\u escaped),
    so identical catalogs and queries give byte-identical output.
    """
    return json.dumps(
        {"schema_version": SCHEMA_VERSION, "command": command, "data": payload},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def emit_output(
    *,
    command: str,
    payload: dict[str, Any],
    json_output: bool,
    output_sink: OutputSink = print,
    human_lines: Iterable[str] = (),
) -> None:
    if json_output:
        output_sink(render_envelope(command, payload))
        return
    for line in human_lines:
        output_sink(line)
