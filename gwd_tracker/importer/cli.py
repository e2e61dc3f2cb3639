"""
CLI commands for GWD imports.

``flask importer run`` reconciles a CSV export against the database and prints
a JSON summary; ``flask importer headers`` shows how raw CSV headers resolve
to canonical GWD fields.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Optional

import click
from flask import current_app
from flask.cli import with_appcontext

from gwd_tracker.importer.adapters import CSVAdapterError
from gwd_tracker.importer.contracts import IGNORE_FIELD, get_gwd_field_specs, transform_header
from gwd_tracker.importer.pipeline import ImportReconciler, ReconciliationError, SQLAlchemyGWDStore
from gwd_tracker.utils.importer import get_staging_batch_size

from .utils import ensure_json_serializable


@click.group(name="importer")
def importer_cli():
    """GWD import commands."""


def get_disabled_importer_group() -> click.Group:
    """
    Return a stub group that explains why importer commands are unavailable.
    """

    @click.group(name="importer", invoke_without_command=True)
    def disabled_group():
        raise click.ClickException("Importer commands are unavailable because IMPORTER_ENABLED=false.")

    return disabled_group


@importer_cli.command("run")
@click.option(
    "--file",
    "file_path",
    required=True,
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Path to the DigTracker CSV export.",
)
@click.option("--batch-size", type=click.IntRange(min=1), help="Override IMPORTER_STAGING_BATCH_SIZE.")
@click.option(
    "--summary-only",
    is_flag=True,
    help="Print the summary without the difference groups.",
)
@with_appcontext
def importer_run(file_path: Path, batch_size: Optional[int], summary_only: bool):
    """Import a GWD CSV file and print the resulting differences."""
    reconciler = ImportReconciler(
        SQLAlchemyGWDStore(),
        batch_size=batch_size or get_staging_batch_size(current_app),
    )
    try:
        with file_path.open("r", encoding="utf-8-sig", newline="") as handle:
            result = reconciler.import_csv(handle)
    except (CSVAdapterError, ReconciliationError) as exc:
        raise click.ClickException(f"Import of {file_path} failed: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise click.ClickException(f"{file_path} is not valid UTF-8 text: {exc}") from exc

    payload = {"summary": result.summary()}
    if not summary_only:
        payload["differences"] = result.differences.to_dict()
    click.echo(json.dumps(ensure_json_serializable(payload), indent=2))


@importer_cli.command("headers")
@click.argument("headers", nargs=-1)
@click.option(
    "--file",
    "file_path",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    help="Read the header row from this CSV file.",
)
def importer_headers(headers: tuple[str, ...], file_path: Optional[Path]):
    """Show how raw CSV headers map to canonical GWD fields."""
    raw_headers = list(headers)
    if file_path is not None:
        with file_path.open("r", encoding="utf-8-sig", newline="") as handle:
            raw_headers.extend(next(csv.reader(handle), []))
    if not raw_headers:
        for spec in get_gwd_field_specs():
            aliases = ", ".join(spec.aliases) or "-"
            click.echo(f"{spec.name}: {aliases}")
        return

    known_fields = {spec.name for spec in get_gwd_field_specs()}
    for raw in raw_headers:
        canonical = transform_header(raw)
        if canonical == IGNORE_FIELD:
            note = " (ignored)"
        elif canonical not in known_fields:
            note = " (not a GWD field)"
        else:
            note = ""
        click.echo(f"{raw!r} -> {canonical}{note}")
