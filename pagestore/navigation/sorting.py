"""Folder listing order: folders before files, then natural name order."""

import re

from pagestore.data_models.node import Node
from pagestore.storage.models import NodeType

_DIGIT_RUN = re.compile(r"(\d+)")


def natural_key(name: str) -> tuple:
    """Case-insensitive, numeric-aware sort key.

    "File 2" sorts before "File 10". Numeric parts are tagged so that they
    never get compared directly against text parts.
    """
    parts = []
    for part in _DIGIT_RUN.split(name.casefold()):
        if not part:
            continue
        if part.isdecimal():
            parts.append((0, int(part), part))
        else:
            parts.append((1, 0, part))
    return tuple(parts)


def type_rank(node_type: NodeType) -> int:
    if node_type == NodeType.FOLDER:
        return 0
    if node_type == NodeType.FILE:
        return 1
    raise ValueError(f"Unknown node type: {node_type!r}")


def listing_sort_key(node: Node) -> tuple:
    # name and id break ties so the order is total and stable
    return (type_rank(node.type), natural_key(node.name), node.name, node.id)


def sort_listing(nodes: list[Node]) -> list[Node]:
    return sorted(nodes, key=listing_sort_key)
