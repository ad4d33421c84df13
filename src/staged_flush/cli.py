"""Command line interface for the flush engine."""
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from tabulate import tabulate

from .config import ConfigLoader
from .errors import ConfigurationError, FlushError
from .flush import FlushOrchestrator
from .registry import StreamWriteTargetRegistry
from .replay import chunk_by_size, iter_jsonl_records
from .run_context import RunContext
from .staging import create_staging_transport
from .streams import StreamIdentity
from .warehouse import SQLiteWarehouse

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger(__name__)

app = typer.Typer(help="Staged batch flush controller")


def _load(config_path: Optional[str]):
    loader = ConfigLoader(path=config_path)
    registry = StreamWriteTargetRegistry.from_catalog(loader.model.catalog)
    return loader.model, registry


@app.command()
def flush(
    stream: str = typer.Option(..., "--stream", help="Stream name"),
    input_path: Path = typer.Option(..., "--input", help="JSONL file of records"),
    namespace: Optional[str] = typer.Option(None, "--namespace"),
    config_path: Optional[str] = typer.Option(None, "--config"),
    keep_staged: bool = typer.Option(False, "--keep-staged", help="Leave staged files in place"),
) -> None:
    """Replay a JSONL dump of records into the stream's destination table."""
    config, registry = _load(config_path)
    run_context = RunContext.create()
    warehouse = SQLiteWarehouse(db_path=config.warehouse.db_path)
    transport = create_staging_transport(warehouse, run_context=run_context)
    orchestrator = FlushOrchestrator(registry, transport, settings=config.flush)
    identity = StreamIdentity(name=stream, namespace=namespace)
    logger.info("Starting replay for stream %s with run_id=%s", identity, run_context.run_id)

    batches = 0
    try:
        records = iter_jsonl_records(input_path)
        for chunk in chunk_by_size(records, orchestrator.optimal_batch_size_bytes()):
            orchestrator.flush(identity, chunk)
            batches += 1
    except ConfigurationError as exc:
        typer.echo(f"Configuration error, aborting sync: {exc}", err=True)
        raise typer.Exit(code=2)
    except FlushError as exc:
        typer.echo(f"Flush failed after {batches} batch(es): {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"Invalid input after {batches} batch(es): {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        target = registry.resolve(identity)
        if target is not None and not keep_staged:
            transport.clean_up_stage(target.dataset_id, target.stream_name)
        warehouse.close()

    typer.echo(f"Flushed {batches} batch(es) for stream {identity}")


@app.command("batch-size")
def batch_size(config_path: Optional[str] = typer.Option(None, "--config")) -> None:
    """Print the batch size hint handed to schedulers."""
    config, _ = _load(config_path)
    typer.echo(str(config.flush.optimal_batch_size_bytes))


@app.command()
def tables(
    config_path: Optional[str] = typer.Option(None, "--config"),
    output_format: str = typer.Option("table", "--format", help="table or json"),
) -> None:
    """List destination tables from the catalog with committed row counts."""
    config, registry = _load(config_path)
    warehouse = SQLiteWarehouse(db_path=config.warehouse.db_path)
    try:
        rows = []
        for identity in registry.known_streams():
            target = registry.resolve(identity)
            rows.append(
                {
                    "stream": str(identity),
                    "table": str(target.target_table_id),
                    "row_count": warehouse.count_rows(target.target_table_id),
                }
            )
    finally:
        warehouse.close()
    if not rows:
        typer.echo("No streams configured.")
        raise typer.Exit(code=0)
    if output_format == "json":
        typer.echo(json.dumps(rows, indent=2))
        return
    typer.echo(
        tabulate(
            [[row["stream"], row["table"], row["row_count"]] for row in rows],
            headers=["stream", "table", "row_count"],
            tablefmt="plain",
        )
    )


if __name__ == "__main__":
    app()
