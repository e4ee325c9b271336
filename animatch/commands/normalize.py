"""Normalize command - show the canonical comparison form of titles."""

from __future__ import annotations

from argparse import Namespace

from animatch.commands.output import emit_output
from animatch.core.recognition import normalize


def run_normalize(args: Namespace, *, output_sink=print) -> int:
    items = [{"title": title, "normalized": normalize(title)} for title in args.titles]
    emit_output(
        command="normalize",
        payload={"items": items},
        json_output=getattr(args, "json", False),
        output_sink=output_sink,
        human_lines=(f"{item['title']} -> {item['normalized']}" for item in items),
    )
    return 0
