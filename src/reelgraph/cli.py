"""reelgraph Command Line Interface.

Entry point for the reelgraph CLI tool.
"""

import time
from pathlib import Path

import typer
from pydantic import ValidationError

from reelgraph import __version__
from reelgraph.contracts.cli import ExecutionResult
from reelgraph.contracts.errors import ReelgraphError
from reelgraph.core.asset_cache import FilesystemAssetCache
from reelgraph.core.config import ReelgraphSettings, load_settings
from reelgraph.core.graphstore import ExecutionStateManager, GraphDB, NodeGraphStore
from reelgraph.core.logging import configure_logging
from reelgraph.core.storage.object_store import RemoteObjectStore
from reelgraph.engine.dispatcher import ExecutorDispatcher
from reelgraph.engine.executors import VideoMergeExecutor

app = typer.Typer(
    name="reelgraph",
    help="reelgraph: incremental node-graph video pipelines.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"reelgraph version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """reelgraph: incremental node-graph video pipelines."""
    pass


def _load_settings_or_exit(settings: str | None) -> ReelgraphSettings:
    try:
        config = load_settings(Path(settings) if settings is not None else None)
    except FileNotFoundError:
        typer.echo(f"Error: Settings file not found: {settings}", err=True)
        raise typer.Exit(1) from None
    except ValidationError as e:
        typer.echo("Configuration errors:", err=True)
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            typer.echo(f"  - {loc}: {error['msg']}", err=True)
        raise typer.Exit(1) from None

    configure_logging(config.logging.level, json_output=config.logging.json_output)
    return config


@app.command()
def execute(
    pipeline_id: str = typer.Argument(..., help="Pipeline the node belongs to."),
    node_id: str = typer.Argument(..., help="Node to execute."),
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file (defaults plus REELGRAPH_* env vars when omitted).",
    ),
) -> None:
    """Execute a single node of a pipeline."""
    config = _load_settings_or_exit(settings)

    try:
        result = _execute_node(config, pipeline_id, node_id)
    except (ReelgraphError, ValidationError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Node {pipeline_id}/{node_id}: {result['status']}")
    if "output_key" in result:
        typer.echo(f"  Output: {result['output_key']}")
    typer.echo(f"  Duration: {result['duration_seconds']:.2f}s")


def _execute_node(config: ReelgraphSettings, pipeline_id: str, node_id: str) -> ExecutionResult:
    """Wire the stores and executors from settings and run one node."""
    start = time.perf_counter()
    with GraphDB.from_url(config.database.url, echo=config.database.echo) as db:
        state = ExecutionStateManager(db)
        cache = FilesystemAssetCache(config.cache.base_path)
        objects = RemoteObjectStore.from_settings(config.storage, cache)
        dispatcher = ExecutorDispatcher(
            state,
            VideoMergeExecutor(
                state,
                objects,
                work_dir=config.execution.work_dir,
                ffmpeg_binary=config.execution.ffmpeg_binary,
            ),
        )

        output = dispatcher.execute(pipeline_id, node_id)
        node = state.get_node(pipeline_id, node_id)

    result: ExecutionResult = {
        "pipeline_id": pipeline_id,
        "node_id": node_id,
        "status": node.status.value if node is not None else "unknown",
        "duration_seconds": time.perf_counter() - start,
    }
    if output is not None and output.key:
        result["output_key"] = output.key
    return result


@app.command("migrate-inputs")
def migrate_inputs(
    settings: str | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Rewrite legacy single-string node inputs as lists."""
    config = _load_settings_or_exit(settings)

    with GraphDB.from_url(config.database.url, echo=config.database.echo) as db:
        migrated = NodeGraphStore(db).migrate_inputs_to_lists()

    typer.echo(f"Migrated {migrated} node(s)")


if __name__ == "__main__":
    app()
