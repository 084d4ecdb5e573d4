"""Conflict-free naming among same-type siblings."""

from typing import Iterable, Iterator

COPY_SUFFIX = " (Copy)"


def name_candidates(name: str) -> Iterator[str]:
    """Yield ``name``, ``name (1)``, ``name (2)``, ... forever."""
    yield name
    counter = 1
    while True:
        yield f"{name} ({counter})"
        counter += 1


def resolve_conflict_free_name(name: str, taken: Iterable[str]) -> str:
    """Return the first candidate for ``name`` that is not already taken.

    Comparison is exact (case-sensitive), so "Notes" and "notes" may coexist.

    Args:
        name: Requested base name
        taken: Names of live siblings of the same type in the target folder

    Returns:
        ``name`` itself when free, otherwise ``name (n)`` for the smallest free n >= 1
    """
    taken_names = set(taken)
    for candidate in name_candidates(name):
        if candidate not in taken_names:
            return candidate
    raise AssertionError("unreachable")  # pragma: no cover


def copy_name(name: str) -> str:
    return f"{name}{COPY_SUFFIX}"
