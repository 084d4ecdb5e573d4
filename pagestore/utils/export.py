import json
import re
from pathlib import Path
from typing import Optional

from pagestore.errors import InvalidOperationError, NotFoundError
from pagestore.navigation.tree import TreeNavigator
from pagestore.repository.nodes import NodeRepository

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """URL/file-safe slug: lowercase, runs of other characters collapsed to '-'."""
    slug = _NON_SLUG.sub("-", title.lower()).strip("-")
    return slug or "untitled"


async def export_tree(
    navigator: TreeNavigator,
    output_path: Path,
    folder_id: Optional[str] = None,
) -> dict:
    """
    Export a folder's structure (names and types, no content) to a JSON file.

    Args:
        navigator: Navigator reading the store
        output_path: Path where the JSON file will be written
        folder_id: Folder to export (None for the whole store)

    Returns:
        Dictionary containing the exported structure metadata

    Raises:
        NotFoundError: If folder_id does not exist
    """
    tree = await navigator.get_tree(folder_id)

    total_nodes = 0
    pending = list(tree.get("children", []))
    while pending:
        entry = pending.pop()
        total_nodes += 1
        pending.extend(entry.get("children", []))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(tree, f, indent=2)

    return {
        "folder_id": tree["id"],
        "total_nodes": total_nodes,
        "output_path": str(output_path),
    }


async def export_file(repository: NodeRepository, node_id: str, output_dir: Path) -> Path:
    """Write a file's content to ``<output_dir>/<slug>.md`` and return the path."""
    node = await repository.get_node(node_id)
    if node is None:
        raise NotFoundError(node_id)
    if not node.is_file:
        raise InvalidOperationError("Only files can be exported", node_id=node_id)

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{slugify(node.name)}.md"
    output_path.write_text(node.content, encoding="utf-8")
    return output_path
