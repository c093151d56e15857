"""Accessibility rules for materials.

Clients historically sent the rule in several shapes: a list of role names, a
role -> bool mapping, a comma separated form value or a JSON string. All of them
are resolved here, once, into one of two variants:

- ``Open``: every requester with a role may read the material.
- ``RestrictedTo(roles)``: only requesters whose role is in ``roles`` may read it.

The database stores ``RestrictedTo`` as a sorted list of role names and ``Open``
as NULL.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterable, Optional, Union


@dataclass(frozen=True)
class Open:
    def allows(self, role: str) -> bool:
        return True

    def to_storage(self) -> Optional[list[str]]:
        return None


@dataclass(frozen=True)
class RestrictedTo:
    roles: FrozenSet[str]

    def allows(self, role: str) -> bool:
        return role in self.roles

    def to_storage(self) -> Optional[list[str]]:
        return sorted(self.roles)


AccessibilityRule = Union[Open, RestrictedTo]

OPEN = Open()


def _clean(names: Iterable[Any]) -> FrozenSet[str]:
    return frozenset(str(name).strip() for name in names if name is not None and str(name).strip())


def parse_accessibility(raw: Any) -> AccessibilityRule:
    """Resolve any accepted raw shape into an AccessibilityRule.

    Raises ValueError for shapes that cannot describe a rule (numbers, nested data).
    """
    if raw is None:
        return OPEN
    if isinstance(raw, (Open, RestrictedTo)):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return OPEN
        if text[0] in "[{":
            try:
                return parse_accessibility(json.loads(text))
            except json.JSONDecodeError as exc:
                raise ValueError(f"Malformed accessibility rule: {raw!r}") from exc
        return parse_accessibility(text.split(","))
    if isinstance(raw, dict):
        roles = _clean(role for role, allowed in raw.items() if allowed)
    elif isinstance(raw, (list, tuple, set, frozenset)):
        if any(isinstance(item, (list, dict, tuple, set)) for item in raw):
            raise ValueError("Accessibility roles must be plain names")
        roles = _clean(
            part for item in raw if item is not None for part in str(item).split(",")
        )
    else:
        raise ValueError(f"Unsupported accessibility rule: {raw!r}")
    return RestrictedTo(roles) if roles else OPEN


__all__ = [
    "AccessibilityRule",
    "OPEN",
    "Open",
    "RestrictedTo",
    "parse_accessibility",
]
