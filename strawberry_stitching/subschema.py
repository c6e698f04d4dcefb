"""Source schemas taking part in a merge."""

from __future__ import annotations

import dataclasses
import functools
import inspect
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, Union

from graphql import (
    DocumentNode,
    ExecutionResult,
    GraphQLError,
    GraphQLSchema,
    execute,
    print_ast,
    validate,
)
from strawberry.schema.schema import Schema
from typing_extensions import Protocol, TypeAlias

from .directives import SchemaAnnotations, load_annotations

if TYPE_CHECKING:
    from strawberry.utils.await_maybe import AwaitableOrValue

__all__ = [
    "Executor",
    "SubSchema",
    "as_subschema",
]


class ResultLike(Protocol):
    data: Optional[dict[str, Any]]
    errors: Optional[Sequence[GraphQLError]]


Executor: TypeAlias = Callable[[DocumentNode, Any], "AwaitableOrValue[ResultLike]"]
SchemaLike: TypeAlias = Union[GraphQLSchema, Schema, "SubSchema"]


def execute_graphql_core(
    schema: GraphQLSchema,
    document: DocumentNode,
    context: Any,
) -> AwaitableOrValue[ExecutionResult]:
    errors = validate(schema, document)
    if errors:
        return ExecutionResult(data=None, errors=errors)

    return execute(schema, document, context_value=context)


async def execute_strawberry(
    schema: Schema,
    document: DocumentNode,
    context: Any,
) -> ResultLike:
    return await schema.execute(print_ast(document), context_value=context)


@dataclasses.dataclass(eq=False)
class SubSchema:
    """A source schema together with the way to execute documents against it.

    Attributes
    ----------
        schema:
            The graphql-core schema whose types are merged
        executor:
            Callable receiving a document and the context value, returning an
            execution result or an awaitable of one. Defaults to validating and
            executing the document with graphql-core
        name:
            Label used in logs and delegation events
        is_local:
            Local schemas keep their own resolvers and are never delegated to

    """

    schema: GraphQLSchema
    executor: Optional[Executor] = None
    name: Optional[str] = None
    is_local: bool = False
    annotations: SchemaAnnotations = dataclasses.field(init=False, repr=False)

    def __post_init__(self):
        if self.executor is None:
            self.executor = functools.partial(execute_graphql_core, self.schema)
        self.annotations = load_annotations(self.schema)

    def __str__(self) -> str:
        return self.name or f"<schema {id(self):#x}>"

    @classmethod
    def from_strawberry(cls, schema: Schema, **kwargs: Any) -> SubSchema:
        kwargs.setdefault("executor", functools.partial(execute_strawberry, schema))
        return cls(schema._schema, **kwargs)

    async def execute(self, document: DocumentNode, context: Any) -> ResultLike:
        result = self.executor(document, context)
        if inspect.isawaitable(result):
            result = await result
        return result


def as_subschema(
    schema: SchemaLike,
    *,
    name: str | None = None,
    is_local: bool = False,
) -> SubSchema:
    if isinstance(schema, SubSchema):
        if schema.is_local == is_local and (name is None or schema.name):
            return schema
        return dataclasses.replace(
            schema,
            name=schema.name or name,
            is_local=is_local,
        )

    if isinstance(schema, Schema):
        return SubSchema.from_strawberry(schema, name=name, is_local=is_local)

    if isinstance(schema, GraphQLSchema):
        return SubSchema(schema, name=name, is_local=is_local)

    raise TypeError(f"Can't merge {schema!r}, expected a GraphQL schema")
