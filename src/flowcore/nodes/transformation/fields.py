# src/flowcore/nodes/transformation/fields.py
"""Record field access shared by the transformation nodes.

MISSING distinguishes "field not present" from "field is None": a filter
condition on a missing field and one on an explicit null behave
differently, and the mapper omits targets whose source is missing.
"""

from typing import Any, Final


class MissingSentinel:
    """Singleton marker for absent fields. Compare with `is`."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<MISSING>"

    def __bool__(self) -> bool:
        return False


MISSING: Final = MissingSentinel()


def get_field(record: dict[str, Any], path: str) -> Any:
    """Value at path, or MISSING.

    An exact key wins over dot notation, so a field literally named "a.b"
    is still reachable; otherwise "user.name" walks nested dicts.
    """
    if path in record:
        return record[path]
    if "." not in path:
        return MISSING

    current: Any = record
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return MISSING
        current = current[part]
    return current
