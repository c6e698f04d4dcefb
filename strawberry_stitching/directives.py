"""Stitching directives and the typed annotations resolved from them.

Two directives drive how types are merged:

- `@merge(query: String)` on an object type names the root query (taking the
  identity argument) that backfills this schema's fields of the type.
- `@discard` on a field drops it from the merged schema. It is meant for
  fields a schema only declares for internal linkage.

Both can be declared with strawberry (`Merge` and `Discard` below) or in SDL
(see `STITCHING_DIRECTIVES_SDL`). They are read once, when a source schema is
wrapped, into a `SchemaAnnotations` value.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Optional, Union

import strawberry
from graphql import (
    DirectiveNode,
    GraphQLField,
    GraphQLNamedType,
    GraphQLSchema,
    is_interface_type,
    is_object_type,
    value_from_ast_untyped,
)
from strawberry.schema_directive import Location

from .exceptions import MalformedDirectiveError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


__all__ = [
    "DISCARD",
    "STITCHING_DIRECTIVES_SDL",
    "Discard",
    "DiscardAnnotation",
    "Merge",
    "MergeAnnotation",
    "SchemaAnnotations",
    "load_annotations",
]

MERGE_DIRECTIVE = "merge"
DISCARD_DIRECTIVE = "discard"

STRAWBERRY_DEFINITION = "strawberry-definition"

STITCHING_DIRECTIVES_SDL = f"""
directive @{MERGE_DIRECTIVE}(query: String) on OBJECT
directive @{DISCARD_DIRECTIVE} on FIELD_DEFINITION
"""


@strawberry.schema_directive(locations=[Location.OBJECT], name=MERGE_DIRECTIVE)
class Merge:
    query: Optional[str] = None


@strawberry.schema_directive(
    locations=[Location.FIELD_DEFINITION],
    name=DISCARD_DIRECTIVE,
)
class Discard:
    pass


@dataclasses.dataclass(frozen=True)
class MergeAnnotation:
    query: str


class DiscardAnnotation:
    def __repr__(self) -> str:
        return "DISCARD"


DISCARD = DiscardAnnotation()

Annotation = Union[MergeAnnotation, DiscardAnnotation, None]


@dataclasses.dataclass(frozen=True)
class SchemaAnnotations:
    types: Mapping[str, MergeAnnotation] = dataclasses.field(default_factory=dict)
    discarded: frozenset[tuple[str, str]] = frozenset()

    def get_type_annotation(self, type_name: str) -> Annotation:
        return self.types.get(type_name)

    def get_field_annotation(self, type_name: str, field_name: str) -> Annotation:
        if (type_name, field_name) in self.discarded:
            return DISCARD
        return None

    def merge_query(self, type_name: str) -> str | None:
        annotation = self.types.get(type_name)
        return annotation.query if annotation is not None else None

    def is_discarded(self, type_name: str, field_name: str) -> bool:
        return (type_name, field_name) in self.discarded


def _ast_directives(obj: GraphQLNamedType | GraphQLField) -> Iterable[DirectiveNode]:
    nodes = [obj.ast_node, *(getattr(obj, "extension_ast_nodes", None) or ())]
    for node in nodes:
        if node is None:
            continue
        yield from node.directives or ()


def _strawberry_directives(obj: GraphQLNamedType | GraphQLField) -> list[object]:
    definition = (obj.extensions or {}).get(STRAWBERRY_DEFINITION)
    return list(getattr(definition, "directives", None) or ())


def _get_merge_annotation(type_: GraphQLNamedType) -> MergeAnnotation | None:
    for directive in _strawberry_directives(type_):
        if isinstance(directive, Merge):
            if not directive.query:
                raise MalformedDirectiveError(MERGE_DIRECTIVE, type_.name, "query")
            return MergeAnnotation(query=directive.query)

    for node in _ast_directives(type_):
        if node.name.value != MERGE_DIRECTIVE:
            continue

        query = None
        for argument in node.arguments or ():
            if argument.name.value == "query":
                query = value_from_ast_untyped(argument.value)

        if not query:
            raise MalformedDirectiveError(MERGE_DIRECTIVE, type_.name, "query")
        return MergeAnnotation(query=query)

    return None


def _is_discarded(field: GraphQLField) -> bool:
    if any(isinstance(d, Discard) for d in _strawberry_directives(field)):
        return True
    return any(
        node.name.value == DISCARD_DIRECTIVE for node in _ast_directives(field)
    )


def load_annotations(schema: GraphQLSchema) -> SchemaAnnotations:
    """Resolve the stitching directives declared in `schema`."""
    types: dict[str, MergeAnnotation] = {}
    discarded: set[tuple[str, str]] = set()

    for name, type_ in schema.type_map.items():
        if name.startswith("__"):
            continue

        if is_object_type(type_):
            annotation = _get_merge_annotation(type_)
            if annotation is not None:
                types[name] = annotation

        if is_object_type(type_) or is_interface_type(type_):
            discarded.update(
                (name, field_name)
                for field_name, field in type_.fields.items()
                if _is_discarded(field)
            )

    return SchemaAnnotations(types=types, discarded=frozenset(discarded))
