"""Command-line shell over the document store.

Each command opens the store, runs one operation and closes it again:

    pagestore mkdir Docs
    pagestore touch Notes --parent <folder-id>
    pagestore ls <folder-id>
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Awaitable, Optional, TypeVar

import typer

from pagestore.data_models.node import Node
from pagestore.errors import NotFoundError, PageStoreError
from pagestore.navigation.tree import TreeNavigator
from pagestore.repository.nodes import NodeRepository
from pagestore.settings import StoreSettings, load_settings
from pagestore.storage.manager import StorageManager
from pagestore.storage.models import ROOT_ID, NodeType
from pagestore.utils.export import export_file as write_file_export
from pagestore.utils.export import export_tree as write_tree_export
from pagestore.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = typer.Typer(
    name="pagestore",
    help="Browse and edit the local document store",
    no_args_is_help=True,
)


@asynccontextmanager
async def open_store(settings: StoreSettings) -> AsyncIterator[tuple[NodeRepository, TreeNavigator]]:
    async with StorageManager(settings.database_path) as storage:
        repository = NodeRepository(storage)
        yield repository, TreeNavigator(repository, settings.breadcrumb_max_depth)


def run(coro: Awaitable[T]) -> T:
    """Run a command coroutine, turning store errors into exit status 1."""
    try:
        return asyncio.run(coro)
    except PageStoreError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def format_node(node: Node) -> str:
    marker = "d" if node.type == NodeType.FOLDER else "-"
    return f"{marker}  {node.id}  {node.name}"


@app.callback()
def main(
    ctx: typer.Context,
    storage_path: Optional[Path] = typer.Option(
        None,
        "--storage",
        "-s",
        help="Storage directory (contains pagestore.db). If not specified, uses the configured data directory.",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a YAML settings file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO level."),
) -> None:
    settings = load_settings(config_path, storage_path=storage_path)
    setup_logging(
        settings.log_file_prefix,
        level=logging.INFO if verbose else logging.WARNING,
        log_dir=settings.base_path / "logs",
    )
    ctx.obj = settings


@app.command()
def ls(
    ctx: typer.Context,
    folder_id: Optional[str] = typer.Argument(None, help="Folder to list (defaults to the top level)."),
):
    """
    List a folder: folders first, then files.
    """

    async def _ls() -> None:
        async with open_store(ctx.obj) as (_, navigator):
            crumbs = await navigator.get_breadcrumbs(folder_id)
            nodes = await navigator.get_folder_contents(folder_id)
        typer.echo("/" + "/".join(crumb.name for crumb in crumbs))
        for node in nodes:
            typer.echo(format_node(node))

    run(_ls())


@app.command()
def mkdir(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    parent: Optional[str] = typer.Option(None, "--parent", "-p", help="Parent folder id."),
):
    """
    Create a folder. The name is suffixed " (n)" if a sibling folder already has it.
    """

    async def _mkdir() -> None:
        async with open_store(ctx.obj) as (repository, _):
            node_id = await repository.create_node(name, NodeType.FOLDER, parent)
            node = await repository.get_node(node_id)
        typer.echo(format_node(node))

    run(_mkdir())


@app.command()
def touch(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    parent: Optional[str] = typer.Option(None, "--parent", "-p", help="Parent folder id."),
    content: str = typer.Option("", "--content", help="Initial content."),
):
    """
    Create a file. The name is suffixed " (n)" if a sibling file already has it.
    """

    async def _touch() -> None:
        async with open_store(ctx.obj) as (repository, _):
            node_id = await repository.create_node(name, NodeType.FILE, parent, content)
            node = await repository.get_node(node_id)
        typer.echo(format_node(node))

    run(_touch())


@app.command()
def rename(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
    new_name: str = typer.Argument(...),
):
    """
    Rename a file or folder.
    """

    async def _rename() -> None:
        async with open_store(ctx.obj) as (repository, _):
            node = await repository.rename_node(node_id, new_name)
        typer.echo(format_node(node))

    run(_rename())


@app.command()
def mv(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
    target_parent_id: str = typer.Argument(..., help=f"Destination folder id, or '{ROOT_ID}'."),
):
    """
    Move a file or folder into another folder.
    """

    async def _mv() -> None:
        async with open_store(ctx.obj) as (repository, _):
            node = await repository.move_node(node_id, target_parent_id)
        typer.echo(format_node(node))

    run(_mv())


@app.command("rm")
def rm(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
):
    """
    Delete a file, or a folder with everything inside it.
    """

    async def _rm() -> None:
        async with open_store(ctx.obj) as (repository, _):
            deleted = await repository.delete_node(node_id)
        typer.echo(f"Deleted {len(deleted)} node(s)")

    run(_rm())


@app.command()
def cat(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
):
    """
    Print a file's content.
    """

    async def _cat() -> None:
        async with open_store(ctx.obj) as (repository, _):
            node = await repository.get_node(node_id)
        if node is None:
            raise NotFoundError(node_id)
        typer.echo(node.content)

    run(_cat())


@app.command()
def write(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
    source: Optional[Path] = typer.Option(
        None,
        "--file",
        "-f",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Read the new content from this file.",
    ),
    content: Optional[str] = typer.Option(None, "--content", help="New content."),
):
    """
    Replace a file's content.
    """
    if (source is None) == (content is None):
        typer.echo("Error: pass exactly one of --file or --content", err=True)
        raise typer.Exit(1)
    text = source.read_text(encoding="utf-8") if source is not None else content

    async def _write() -> None:
        async with open_store(ctx.obj) as (repository, _):
            node = await repository.update_file_content(node_id, text)
        typer.echo(f"Saved {len(node.content)} characters to {node.name}")

    run(_write())


@app.command()
def cp(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
):
    """
    Duplicate a file next to itself as "<name> (Copy)".
    """

    async def _cp() -> None:
        async with open_store(ctx.obj) as (repository, _):
            copy_id = await repository.duplicate_node(node_id)
            node = await repository.get_node(copy_id)
        typer.echo(format_node(node))

    run(_cp())


@app.command()
def recent(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", min=1),
):
    """
    List the most recently modified files.
    """

    async def _recent() -> None:
        async with open_store(ctx.obj) as (repository, _):
            nodes = await repository.get_recent_files(limit)
        for node in nodes:
            typer.echo(f"{node.updated_at.isoformat()}  {format_node(node)}")

    run(_recent())


@app.command()
def path(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
):
    """
    Print the full path of a node.
    """

    async def _path() -> None:
        async with open_store(ctx.obj) as (repository, navigator):
            folder_id = await navigator.get_folder_of(node_id)
            crumbs = await navigator.get_breadcrumbs(folder_id)
            folder = await repository.get_node(folder_id)
            node = await repository.get_node(node_id)
        names = [crumb.name for crumb in crumbs]
        if folder is not None:
            names.append(folder.name)
        names.append(node.name)
        typer.echo("/" + "/".join(names))

    run(_path())


@app.command()
def export_tree(
    ctx: typer.Context,
    output_path: Path = typer.Argument(..., help="Output JSON file path"),
    folder_id: Optional[str] = typer.Option(None, "--folder", help="Folder to export (defaults to everything)."),
):
    """
    Export the folder structure (names and types, no content) to a JSON file.
    """

    async def _export() -> dict:
        async with open_store(ctx.obj) as (_, navigator):
            return await write_tree_export(navigator, output_path, folder_id)

    result = run(_export())
    typer.echo(f"Found {result['total_nodes']} nodes")
    typer.echo(f"✓ Exported structure to {result['output_path']}")


@app.command()
def export_file(
    ctx: typer.Context,
    node_id: str = typer.Argument(...),
    output_dir: Path = typer.Argument(..., file_okay=False, help="Directory to write <slug>.md into"),
):
    """
    Export a file's content as <slug>.md.
    """

    async def _export() -> Path:
        async with open_store(ctx.obj) as (repository, _):
            return await write_file_export(repository, node_id, output_dir)

    output_path = run(_export())
    typer.echo(f"✓ Exported to {output_path}")


if __name__ == "__main__":
    app()
