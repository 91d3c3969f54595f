"""Pure deep merge for nested configuration mappings."""

from typing import Any, Dict, List, Mapping


def _mergeable(value: Any) -> bool:
    return isinstance(value, (Mapping, list))


def _merge_lists(*sources: List[Any]) -> List[Any]:
    # Later sources take precedence in ordering; duplicates are dropped.
    merged: List[Any] = []
    for source in reversed(sources):
        for item in source:
            if item not in merged:
                merged.append(item)
    return merged


def deep_merge(*sources: Any) -> Any:
    """
    Merge mappings recursively into a new structure.

    Later sources win on scalar conflicts. Nested mappings are merged key by
    key, lists are concatenated (later items first, without duplicates).
    ``None`` sources are skipped. Inputs are never mutated.

    Args:
        *sources: Mappings (or lists) to merge, lowest precedence first

    Returns:
        A new dict (or list when every source is a list)
    """
    sources = tuple(source for source in sources if source is not None)

    if sources and all(isinstance(source, list) for source in sources):
        return _merge_lists(*sources)

    merged: Dict[str, Any] = {}
    for source in sources:
        if not isinstance(source, Mapping):
            continue
        for key, value in source.items():
            if _mergeable(value):
                current = merged.get(key)
                if isinstance(value, list):
                    merged[key] = _merge_lists(current, value) if isinstance(current, list) else list(value)
                else:
                    merged[key] = deep_merge(current if isinstance(current, Mapping) else None, value)
            else:
                merged[key] = value

    return merged
