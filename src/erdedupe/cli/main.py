"""Command-line interface for erdedupe.

Provides CLI commands for resolving record files and checking configs.
"""

import importlib.metadata
import sys
import time
from pathlib import Path

import click

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("erdedupe")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development


@click.group()
@click.version_option(version=__version__, prog_name="erdedupe")
def cli() -> None:
    """Deterministic entity resolution for structured records.

    Use 'erdedupe COMMAND --help' for command-specific help.
    """


@cli.command()
@click.argument("records_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("pairs_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Resolution config JSON file",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    default="out",
    help="Output directory for results (default: out)",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    default=None,
    help="Thread pool size for classification and fusion (default: sequential)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def resolve(
    records_path: str,
    pairs_path: str,
    config_path: str,
    output_dir: str,
    workers: int | None,
    verbose: bool,
) -> None:
    """Resolve RECORDS_PATH into canonical entities using PAIRS_PATH.

    RECORDS_PATH is a JSONL file of {"rid": ..., "attributes": {...}} objects.
    PAIRS_PATH is a JSONL file of {"rid_a": ..., "rid_b": ...} candidate pairs.

    Outputs are written to OUTPUT_DIR: verdicts.jsonl, clusters.jsonl,
    canonical_records.jsonl, warnings.jsonl, summary.json and the audit
    trail events.jsonl.

    Examples
    --------
        erdedupe resolve records.jsonl pairs.jsonl -c config.json
        erdedupe resolve records.jsonl pairs.jsonl -c config.json -o results -w 4
    """
    from erdedupe.api import read_pairs_jsonl, read_records_jsonl, write_outputs
    from erdedupe.audit import AuditLogger, generate_run_id
    from erdedupe.engine import load_config, run_resolution

    output_dir_obj = Path(output_dir)
    output_dir_obj.mkdir(parents=True, exist_ok=True)

    if verbose:
        click.echo("Starting resolution...", err=True)
        click.echo(f"  Records: {records_path}", err=True)
        click.echo(f"  Pairs: {pairs_path}", err=True)
        click.echo(f"  Config: {config_path}", err=True)
        click.echo(f"  Output: {output_dir}", err=True)

    start = time.perf_counter()
    with AuditLogger(generate_run_id(), output_dir_obj / "events.jsonl") as logger:
        logger.run_started(
            command=sys.argv,
            parameters={
                "records": records_path,
                "pairs": pairs_path,
                "config": config_path,
                "workers": workers,
            },
        )
        try:
            config = load_config(config_path)
            records = read_records_jsonl(records_path)
            pairs = read_pairs_jsonl(pairs_path)

            if verbose:
                click.echo(f"Loaded {len(records)} records and {len(pairs)} pairs", err=True)

            result = run_resolution(records, pairs, config, workers=workers, logger=logger)
            output_files = write_outputs(result, output_dir_obj, logger=logger)

        except Exception as e:
            logger.run_finished(status="failed", duration_seconds=time.perf_counter() - start)
            click.secho(f"✗ Error: {e}", fg="red", err=True)
            if verbose:
                import traceback

                click.echo(traceback.format_exc(), err=True)
            sys.exit(1)

        logger.run_finished(
            status="success",
            duration_seconds=time.perf_counter() - start,
            records_processed=len(records),
        )

    summary = result.summary
    if verbose:
        click.echo("\n✓ Resolution completed successfully!", err=True)
        click.echo("\nResults:", err=True)
        click.echo(f"  Records in: {summary['records_in']}", err=True)
        click.echo(f"  Canonical records: {summary['records_out']}", err=True)
        click.echo(f"  Review clusters: {summary['review_clusters']}", err=True)
        click.echo(f"  Warnings: {len(result.warnings)}", err=True)
        click.echo("\nOutputs:", err=True)
        for name, path in output_files.items():
            click.echo(f"  {name}: {path}", err=True)
    else:
        click.secho(
            f"✓ Resolved {summary['records_in']} records into "
            f"{summary['records_out']} entities "
            f"({summary['review_clusters']} clusters for review)",
            fg="green",
        )


@cli.command("validate-config")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def validate_config(config_path: str) -> None:
    """Check that CONFIG_PATH is a valid resolution config.

    Examples
    --------
        erdedupe validate-config config.json
    """
    from erdedupe.engine import load_config
    from erdedupe.errors import ConfigurationError

    try:
        config = load_config(config_path)
    except ConfigurationError as e:
        click.secho(f"✗ Invalid config: {e}", fg="red", err=True)
        sys.exit(1)

    attributes = ", ".join(config.classifier.attributes)
    click.secho(
        f"✓ Config OK: {len(config.classifier.comparisons)} comparisons ({attributes}), "
        f"policy {config.clustering.policy.value}",
        fg="green",
    )


if __name__ == "__main__":
    cli()
