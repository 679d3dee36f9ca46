"""Main entry point for the cmaqueue command line.

Sets up the Typer CLI application, performs dependency injection (Composition
Root), defines CLI commands, and delegates the work to QueueClient.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer
from typing_extensions import Annotated

from cmaqueue.core.queue_client import ITEM_COMMANDS, QueueClient, QueuedSpace
from cmaqueue.domain.exceptions import QueueError
from cmaqueue.infrastructure.cli.display import ConsoleDisplay
from cmaqueue.infrastructure.config.settings import DEFAULT_CONFIG_FILE, YamlEnvConfiguration
from cmaqueue.infrastructure.monitoring.logger_setup import setup_logging
from cmaqueue.infrastructure.remote.contentful_client import ContentfulClient

logger = logging.getLogger(__name__)

# --- Dependency Injection (Manual) ---


def create_dependencies(config: YamlEnvConfiguration) -> Dict[str, Any]:
    """Creates and wires up all dependencies for one CLI invocation.

    This acts as the Composition Root.
    """
    config.load_config()
    setup_logging(
        log_level=config.get('logging.level', 'WARNING'),
        log_format=config.get('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        log_file=config.get('logging.file'),
    )
    options = config.build_client_options()
    logger.info(f"Client options: {options.to_dict()}")

    dependencies: Dict[str, Any] = {'config': config, 'options': options, 'ui': ConsoleDisplay()}
    dependencies['remote_client'] = (
        ContentfulClient(access_token=options.access_token, environment=options.environment)
        if options.access_token else None
    )
    dependencies['client'] = QueueClient(options=options, remote_client=dependencies['remote_client'])
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="cmaqueue",
    help="Queue, retry and localize bulk operations against the Contentful Content Management API.",
    add_completion=False,
)


def run_async(deps: Dict[str, Any], session: Callable[[QueueClient], Awaitable[Any]]) -> Any:
    """Runs an async session against the client, closing the remote client afterwards.

    Errors are shown to the user and turned into exit code 1.
    """
    async def runner() -> Any:
        try:
            return await session(deps['client'])
        finally:
            if deps['remote_client'] is not None:
                await deps['remote_client'].close()

    try:
        return asyncio.run(runner())
    except QueueError as e:
        logger.error(f"Command failed: {e}")
        deps['ui'].display_error(_describe_error(e))
        raise typer.Exit(code=1)
    except Exception as e:
        logger.error(f"Unexpected error executing command: {e}", exc_info=True)
        deps['ui'].display_error(_describe_error(e))
        raise typer.Exit(code=1)


def _describe_error(error: BaseException) -> str:
    notes = getattr(error, "__notes__", None) or []
    return "\n".join([f"{getattr(error, 'name', type(error).__name__)}: {error}", *notes])


def _read_items(file: Path) -> Any:
    try:
        with open(file, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(f"Could not read JSON from {file}: {e}")


def _summarize(resources: List[Any]) -> List[Any]:
    return [getattr(resource, 'data', resource) for resource in resources]


# --- CLI Commands ---

@app.callback()
def main_callback(
    ctx: typer.Context,
    config_file: Annotated[Path, typer.Option("--config", help="YAML configuration file.")] = DEFAULT_CONFIG_FILE,
    locale: Annotated[Optional[str], typer.Option("--locale", "-l", help="Locale used to localize fields.")] = None,
    concurrency: Annotated[Optional[int], typer.Option("--concurrency", "-c", min=1, help="Maximum requests in flight.")] = None,
    retries: Annotated[Optional[int], typer.Option("--retries", "-r", min=0, help="Retries per item on 5xx errors.")] = None,
    delay: Annotated[Optional[float], typer.Option("--delay", min=0.0, help="Seconds between items on each worker.")] = None,
    no_progress: Annotated[bool, typer.Option("--no-progress", help="Disable the progress bar.")] = False,
    log_level: Annotated[Optional[str], typer.Option("--log-level", help="Logging level (debug, info, ...).")] = None,
):
    """Configures the client shared by every command."""
    config = YamlEnvConfiguration(config_file=config_file)
    flag_overrides = {
        'locale': locale,
        'queue.concurrency': concurrency,
        'retry.retries': retries,
        'queue.delay': delay,
        'logging.level': log_level,
        'progress': False if no_progress else None,
    }
    for key, value in flag_overrides.items():
        if value is not None:
            config.set(key, value)
    ctx.obj = create_dependencies(config)


@app.command()
def localize(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="JSON object or array of flat objects.")],
):
    """Print the localized form of the objects in FILE."""
    deps = ctx.obj
    items = _read_items(file)
    try:
        localized = deps['client'].localize(items)
    except QueueError as e:
        deps['ui'].display_error(str(e))
        raise typer.Exit(code=1)
    deps['ui'].display_output(localized, raw=True)


@app.command(name="create-entries")
def create_entries(
    ctx: typer.Context,
    content_type: Annotated[str, typer.Argument(help="Content type id of the new entries.")],
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, readable=True, help="JSON array of flat objects.")],
):
    """Localize the objects in FILE and create one entry per object."""
    deps = ctx.obj
    items = _read_items(file)

    async def session(client: QueueClient) -> List[Any]:
        entries = client.localize(items)
        if isinstance(entries, dict):
            entries = [entries]

        async def create(space: QueuedSpace) -> List[Any]:
            return await space.queue("create_entry", content_type, entries)

        return await client.with_space(create)

    created = run_async(deps, session)
    deps['ui'].display_info(f"Created {len(created)} entries of type '{content_type}'.")
    deps['ui'].display_output(_summarize(created), title="Created entries")


@app.command()
def entries(
    ctx: typer.Context,
    command: Annotated[str, typer.Argument(help=f"One of: {', '.join(sorted(ITEM_COMMANDS))}.")],
    assets: Annotated[bool, typer.Option("--assets", help="Operate on assets instead of entries.")] = False,
    limit: Annotated[int, typer.Option("--limit", min=1, max=1000, help="Page size to fetch.")] = 100,
    content_type: Annotated[Optional[str], typer.Option("--content-type", help="Only entries of this content type.")] = None,
):
    """Run COMMAND (publish, unpublish, ...) over the entries or assets of the space."""
    deps = ctx.obj
    if command not in ITEM_COMMANDS:
        raise typer.BadParameter(f"Unknown command '{command}'. Choose from: {', '.join(sorted(ITEM_COMMANDS))}")
    query: Dict[str, Any] = {'limit': limit}
    if content_type and not assets:
        query['content_type'] = content_type

    async def session(client: QueueClient) -> List[Any]:
        async def run(space: QueuedSpace) -> List[Any]:
            collection = await (space.get_assets(query) if assets else space.get_entries(query))
            return await client.queue_over_collection(command, collection)

        return await client.with_space(run)

    results = run_async(deps, session)
    kind = "assets" if assets else "entries"
    deps['ui'].display_info(f"Ran '{command}' on {len(results)} {kind}.")


# --- Main Execution Guard ---

def cli_entry_point():
    """Function called by the console script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
