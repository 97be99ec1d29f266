"""
Requested field trees

A FieldTree is the set of fields a caller asked for on one object type, with
nested trees for object-valued fields (Event -> partOf -> {id, name}). It is
read-only input to the planner and lives for one resolution.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping, Optional

from strawberry.types.nodes import FragmentSpread, InlineFragment


@dataclass(frozen=True)
class FieldTree:
    """Requested fields of one object, in request order."""

    children: tuple["FieldNode", ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator["FieldNode"]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    @property
    def names(self) -> list[str]:
        return [child.name for child in self.children]

    def get(self, name: str) -> Optional["FieldNode"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def contains(self, name: str) -> bool:
        """True when `name` is requested on this object, with or without sub-fields."""
        return self.get(name) is not None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "FieldTree":
        """
        Build a tree from a nested mapping.

        Leaf fields map to None, object fields map to another mapping:
            FieldTree.from_mapping({"id": None, "partOf": {"name": None}})
        """
        return cls(tuple(
            FieldNode(name, cls.from_mapping(sub) if sub is not None else cls())
            for name, sub in mapping.items()
        ))

    @classmethod
    def from_selection(cls, selections: Iterable[Any]) -> "FieldTree":
        """
        Build a tree from GraphQL selections (strawberry ``info.selected_fields``
        children). Named and inline fragments are flattened into the enclosing
        object; a field selected twice is merged.
        """
        merged: dict[str, list] = {}
        for name, sub in _walk_selections(selections):
            merged.setdefault(name, []).extend(sub)
        return cls(tuple(
            FieldNode(name, cls.from_selection(sub)) for name, sub in merged.items()
        ))


@dataclass(frozen=True)
class FieldNode:
    """One requested field and, for object fields, what was requested inside it."""

    name: str
    subtree: FieldTree = field(default_factory=FieldTree)


def _walk_selections(selections: Iterable[Any]):
    for selection in selections:
        name = getattr(selection, "name", None)
        sub = getattr(selection, "selections", None) or []
        if name is not None and not isinstance(selection, (FragmentSpread, InlineFragment)):
            yield name, list(sub)
        else:
            yield from _walk_selections(sub)

