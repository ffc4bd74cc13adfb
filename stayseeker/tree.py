"""Lookups over decoded JSON trees (dicts, lists and scalars).

Embedded page data moves around between site releases, so besides the exact
``get_path`` accessor there are two structural searches that look for a key
path or a matching object anywhere below a node. Traversal is depth-first in
dict insertion order and list index order; the first hit wins.
"""
from typing import Any, Callable, Sequence


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


# JSON null is a legitimate value, so absence needs its own marker
MISSING: Any = _Missing()


def get_path(tree: Any, keys: Sequence[str]) -> Any:
    current = tree
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return MISSING
        current = current[key]
    return current


def find_nested(tree: Any, keys: Sequence[str]) -> Any:
    """Resolve ``keys`` starting at whichever node first holds ``keys[0]``."""
    if not keys:
        return MISSING

    if isinstance(tree, dict):
        if keys[0] in tree:
            found = get_path(tree[keys[0]], keys[1:])
            if found is not MISSING:
                return found
        for value in tree.values():
            found = find_nested(value, keys)
            if found is not MISSING:
                return found
        return MISSING

    if isinstance(tree, list):
        for item in tree:
            found = find_nested(item, keys)
            if found is not MISSING:
                return found

    return MISSING


def find_first_matching(tree: Any, predicate: Callable[[dict], bool]) -> Any:
    """Return the first dict below ``tree`` (itself included) accepted by ``predicate``."""
    if isinstance(tree, dict):
        if predicate(tree):
            return tree
        children = tree.values()
    elif isinstance(tree, list):
        children = tree
    else:
        return MISSING

    for child in children:
        found = find_first_matching(child, predicate)
        if found is not MISSING:
            return found
    return MISSING
