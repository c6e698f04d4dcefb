"""Compatibility layer for graphql-core 3.2.x and 3.3.x."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from graphql import GraphQLObjectType, GraphQLSchema, OperationType
from graphql.version import VersionInfo, version_info

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from graphql import GraphQLArgument, GraphQLInputField, GraphQLResolveInfo

IS_GQL_33 = version_info >= VersionInfo.from_str("3.3.0a0")
IS_GQL_32 = not IS_GQL_33

# 3.3 keeps SDL defaults as literals in `default`, next to `default_value`
_DEFAULT_ATTRIBUTES = ("default_value", "default") if IS_GQL_33 else ("default_value",)


def node_list(nodes: Iterable[Any]) -> Any:
    """Build a container of AST nodes the way the installed parser does.

    graphql-core 3.2 stores child nodes in lists, 3.3 in tuples, and its
    visitor only descends into the matching container type.
    """
    if IS_GQL_33:
        return tuple(nodes)
    return list(nodes)


def get_root_type(
    schema: GraphQLSchema,
    operation: OperationType,
) -> Optional[GraphQLObjectType]:
    if operation == OperationType.QUERY:
        return schema.query_type
    if operation == OperationType.MUTATION:
        return schema.mutation_type
    return schema.subscription_type


def get_variable_values(info: GraphQLResolveInfo) -> Mapping[str, Any]:
    """Return the coerced variable values of the operation being executed."""
    if IS_GQL_32:
        return info.variable_values
    return info.variable_values.coerced  # type: ignore


def get_default_kwargs(value: GraphQLArgument | GraphQLInputField) -> dict[str, Any]:
    """Return the keyword arguments rebuilding the default of an argument."""
    return {
        attribute: getattr(value, attribute)
        for attribute in _DEFAULT_ATTRIBUTES
        if hasattr(value, attribute)
    }
