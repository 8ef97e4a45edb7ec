"""
Additive field merging shared by owner and property reconciliation.

merge_fields() only computes the patch; callers decide whether to write it.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping


@dataclass
class FieldMerge:
    """Outcome of comparing an existing record with incoming values"""
    changed: bool
    patch: Dict[str, Any] = field(default_factory=dict)


def _read(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def merge_fields(existing: Any,
                 incoming: Any,
                 fields: Iterable[str],
                 overwrite: bool = False,
                 accept: Callable[[Any], bool] = bool) -> FieldMerge:
    """
    Compute an additive patch from incoming values.

    A field is patched when accept(incoming value) is true and either the
    existing value is falsy or overwrite is set. Existing populated values
    are otherwise left alone.

    Args:
        existing: Stored entity (object or mapping)
        incoming: New values (object or mapping)
        fields: Field names to consider, in order
        overwrite: Replace populated values too (property financials)
        accept: Predicate deciding whether an incoming value is usable

    Returns:
        FieldMerge with changed flag and the patch to apply
    """
    patch = {}
    for name in fields:
        new_value = _read(incoming, name)
        if not accept(new_value):
            continue
        current = _read(existing, name)
        if overwrite or not current:
            if current != new_value:
                patch[name] = new_value

    return FieldMerge(changed=bool(patch), patch=patch)
