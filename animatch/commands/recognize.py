"""Recognize command - match raw titles against the catalog."""

from __future__ import annotations

from argparse import Namespace

from animatch.commands.output import emit_output
from animatch.core.models import CacheStats, describe_result
from animatch.core.recognition import RecognitionEngine
from animatch.errors import ValidationError
from animatch.infrastructure.catalog_store import CatalogStore


def _human_line(title: str, outcome: dict) -> str:
    if outcome["anime_id"] is None:
        return f"{title!r}: no match"
    return (
        f"{title!r}: {outcome['kind']} -> {outcome['title']} "
        f"(id={outcome['anime_id']}, confidence={outcome['confidence']:.2f})"
    )


def _stats_line(stats: CacheStats) -> str:
    return (
        f"stats: indexed={stats.entries_indexed} query_cache={stats.hits_query_cache} "
        f"exact={stats.hits_exact} normalized={stats.hits_normalized} "
        f"fuzzy={stats.hits_fuzzy} misses={stats.misses}"
    )


def run_recognize(
    args: Namespace,
    *,
    store: CatalogStore | None = None,
    engine: RecognitionEngine | None = None,
    output_sink=print,
) -> int:
    """Recognize each title through one engine, so repeats hit the query cache."""
    if store is None:
        raise ValidationError("store is required; construct it in the CLI composition root")
    engine = engine if engine is not None else RecognitionEngine(store)

    items = []
    for title in args.titles:
        outcome = describe_result(engine.recognize(title))
        items.append({"query": title, **outcome})

    stats = engine.stats()
    human_lines = [_human_line(item["query"], item) for item in items]
    human_lines.append(_stats_line(stats))
    emit_output(
        command="recognize",
        payload={"items": items, "stats": stats.as_dict()},
        json_output=getattr(args, "json", False),
        output_sink=output_sink,
        human_lines=human_lines,
    )
    return 0
