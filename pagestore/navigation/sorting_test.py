"""Tests for folder listing order."""

from datetime import datetime, timezone

import pytest

from pagestore.data_models.node import Node
from pagestore.navigation.sorting import natural_key, sort_listing, type_rank
from pagestore.storage.models import NodeType

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_node(node_id: str, name: str, node_type: NodeType = NodeType.FILE) -> Node:
    return Node(id=node_id, name=name, type=node_type, created_at=NOW, updated_at=NOW)


def names(nodes: list[Node]) -> list[str]:
    return [node.name for node in nodes]


def test_folders_before_files():
    nodes = [
        make_node("1", "alpha"),
        make_node("2", "zulu", NodeType.FOLDER),
        make_node("3", "beta"),
        make_node("4", "Alpha", NodeType.FOLDER),
    ]
    assert names(sort_listing(nodes)) == ["Alpha", "zulu", "alpha", "beta"]


def test_numeric_parts_compare_as_numbers():
    nodes = [make_node(str(i), name) for i, name in enumerate(["File 10", "File 2", "File 1"])]
    assert names(sort_listing(nodes)) == ["File 1", "File 2", "File 10"]


def test_case_insensitive():
    nodes = [make_node("1", "banana"), make_node("2", "Apple"), make_node("3", "cherry")]
    assert names(sort_listing(nodes)) == ["Apple", "banana", "cherry"]


def test_mixed_digit_and_text_names_do_not_crash():
    nodes = [make_node("1", "10"), make_node("2", "abc"), make_node("3", "2b"), make_node("4", "x²")]
    assert names(sort_listing(nodes)) == ["2b", "10", "abc", "x²"]


def test_ties_are_stable_by_id():
    nodes = [make_node("b", "Same"), make_node("a", "Same")]
    assert [node.id for node in sort_listing(nodes)] == ["a", "b"]


def test_natural_key():
    assert natural_key("Chapter 2") < natural_key("chapter 10")
    assert natural_key("a") == natural_key("A")


def test_type_rank():
    assert type_rank(NodeType.FOLDER) < type_rank(NodeType.FILE)
    with pytest.raises(ValueError):
        type_rank("symlink")
