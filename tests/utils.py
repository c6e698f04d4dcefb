from typing import Any, Callable, Dict, List, Mapping, Optional

from graphql import (
    DocumentNode,
    GraphQLSchema,
    build_schema,
    lexicographic_sort_schema,
    parse,
    print_ast,
    print_schema,
)

from strawberry_stitching import STITCHING_DIRECTIVES_SDL, SubSchema
from strawberry_stitching.subschema import execute_graphql_core

Resolvers = Mapping[str, Mapping[str, Callable[..., Any]]]


def make_executable_schema(
    type_defs: str,
    resolvers: Optional[Resolvers] = None,
) -> GraphQLSchema:
    """Build a schema from SDL and attach resolvers to its fields."""
    schema = build_schema(STITCHING_DIRECTIVES_SDL + type_defs)
    for type_name, fields in (resolvers or {}).items():
        type_ = schema.get_type(type_name)
        assert type_ is not None, type_name
        for field_name, resolver in fields.items():
            type_.fields[field_name].resolve = resolver  # type: ignore
    return schema


def sorted_sdl(schema: GraphQLSchema) -> str:
    return print_schema(lexicographic_sort_schema(schema))


def sdl(type_defs: str) -> str:
    return sorted_sdl(build_schema(type_defs))


def document(source: str) -> str:
    return print_ast(parse(source))


class RecordingExecutor:
    """Execute documents with graphql-core and keep them for assertions."""

    def __init__(self, schema: GraphQLSchema):
        self.schema = schema
        self.documents: List[str] = []

    def __call__(self, document: DocumentNode, context: Any):
        self.documents.append(print_ast(document))
        return execute_graphql_core(self.schema, document, context)


def recording_subschema(
    type_defs: str,
    resolvers: Optional[Resolvers] = None,
    *,
    name: str,
) -> SubSchema:
    schema = make_executable_schema(type_defs, resolvers)
    return SubSchema(schema, executor=RecordingExecutor(schema), name=name)


def documents_of(subschema: SubSchema) -> List[str]:
    executor = subschema.executor
    assert isinstance(executor, RecordingExecutor)
    return executor.documents


def by_id(items: Dict[str, Any]) -> Callable[..., Any]:
    return lambda _root, _info, id: items.get(id)  # noqa: A002
