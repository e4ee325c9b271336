"""Import command - batch load a JSON catalog into the catalog DB."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path

from animatch.commands.output import emit_output
from animatch.errors import ValidationError
from animatch.infrastructure.catalog_store import CatalogStore, load_catalog_file


def run_import(
    args: Namespace,
    *,
    store: CatalogStore | None = None,
    output_sink=print,
) -> int:
    """Upsert every anime in a JSON catalog file into the store."""
    if store is None:
        raise ValidationError("store is required; construct it in the CLI composition root")
    catalog_path = Path(args.catalog)
    if not catalog_path.exists():
        raise ValidationError(f"Catalog file does not exist: {catalog_path}")

    records = load_catalog_file(catalog_path)
    imported = store.import_anime(records)
    total = len(store.all_anime())
    emit_output(
        command="import",
        payload={"catalog": str(catalog_path), "imported": imported, "total": total},
        json_output=getattr(args, "json", False),
        output_sink=output_sink,
        human_lines=(f"import: imported={imported} total={total}",),
    )
    return 0
