"""Rebuild source types so that their references point at merged types."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, Optional

from graphql import (
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLEnumValue,
    GraphQLField,
    GraphQLInputField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLScalarType,
    GraphQLUnionType,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_list_type,
    is_non_null_type,
    is_scalar_type,
    is_specified_scalar_type,
    is_union_type,
    specified_scalar_types,
)
from graphql.execution.execute import default_type_resolver
from typing_extensions import TypeAlias

from .utils.gql_compat import get_default_kwargs

if TYPE_CHECKING:
    from graphql import (
        GraphQLAbstractType,
        GraphQLFieldResolver,
        GraphQLResolveInfo,
        GraphQLType,
        GraphQLTypeResolver,
    )


__all__ = [
    "NewTypesMap",
    "recreate_arguments",
    "recreate_field",
    "recreate_named_type",
    "rewrite_type",
]

NewTypesMap: TypeAlias = Dict[str, GraphQLNamedType]

TYPENAME_KEY = "__typename"


def rewrite_type(type_: GraphQLType, new_types: NewTypesMap) -> Any:
    """Rewrite a (possibly wrapped) type reference to the merged table."""
    if is_non_null_type(type_):
        return GraphQLNonNull(rewrite_type(type_.of_type, new_types))
    if is_list_type(type_):
        return GraphQLList(rewrite_type(type_.of_type, new_types))
    if is_specified_scalar_type(type_):
        return specified_scalar_types[type_.name]
    return new_types.get(type_.name, type_)


def recreate_arguments(
    args: Mapping[str, GraphQLArgument],
    new_types: NewTypesMap,
) -> dict[str, GraphQLArgument]:
    return {
        name: GraphQLArgument(
            rewrite_type(arg.type, new_types),
            **get_default_kwargs(arg),
            description=arg.description,
            deprecation_reason=arg.deprecation_reason,
            out_name=arg.out_name,
            extensions=arg.extensions,
            ast_node=arg.ast_node,
        )
        for name, arg in args.items()
    }


def recreate_field(
    field: GraphQLField,
    new_types: NewTypesMap,
    *,
    resolve: Optional[GraphQLFieldResolver] = None,
    subscribe: Optional[GraphQLFieldResolver] = None,
) -> GraphQLField:
    return GraphQLField(
        rewrite_type(field.type, new_types),
        args=recreate_arguments(field.args, new_types),
        resolve=resolve,
        subscribe=subscribe,
        description=field.description,
        deprecation_reason=field.deprecation_reason,
        extensions=field.extensions,
        ast_node=field.ast_node,
    )


def create_type_resolver(
    original: Optional[GraphQLTypeResolver],
) -> GraphQLTypeResolver:
    """Resolve abstract types from the `__typename` of delegated results."""

    def resolve_type(
        value: Any,
        info: GraphQLResolveInfo,
        abstract_type: GraphQLAbstractType,
    ):
        if isinstance(value, Mapping):
            typename = value.get(TYPENAME_KEY)
            if isinstance(typename, str):
                return typename

        if original is not None:
            return original(value, info, abstract_type)

        return default_type_resolver(value, info, abstract_type)

    return resolve_type


def _recreate_scalar_type(
    type_: GraphQLScalarType,
    *,
    is_local: bool,
) -> GraphQLScalarType:
    if is_local:
        return type_

    # Values of remote scalars travel in their serialized form, the owning
    # schema parses and validates them.
    return GraphQLScalarType(
        name=type_.name,
        description=type_.description,
        specified_by_url=type_.specified_by_url,
        extensions=type_.extensions,
        ast_node=type_.ast_node,
        extension_ast_nodes=type_.extension_ast_nodes,
    )


def _recreate_enum_type(type_: GraphQLEnumType, *, is_local: bool) -> GraphQLEnumType:
    if is_local:
        return type_

    return GraphQLEnumType(
        name=type_.name,
        values={
            name: GraphQLEnumValue(
                name,
                description=value.description,
                deprecation_reason=value.deprecation_reason,
                extensions=value.extensions,
                ast_node=value.ast_node,
            )
            for name, value in type_.values.items()
        },
        description=type_.description,
        extensions=type_.extensions,
        ast_node=type_.ast_node,
        extension_ast_nodes=type_.extension_ast_nodes,
    )


def _recreate_input_object_type(
    type_: GraphQLInputObjectType,
    new_types: NewTypesMap,
    *,
    is_local: bool,
) -> GraphQLInputObjectType:
    def fields():
        return {
            name: GraphQLInputField(
                rewrite_type(field.type, new_types),
                **get_default_kwargs(field),
                description=field.description,
                deprecation_reason=field.deprecation_reason,
                out_name=field.out_name if is_local else None,
                extensions=field.extensions,
                ast_node=field.ast_node,
            )
            for name, field in type_.fields.items()
        }

    return GraphQLInputObjectType(
        name=type_.name,
        fields=fields,
        description=type_.description,
        out_type=type_.out_type if is_local else None,
        extensions=type_.extensions,
        ast_node=type_.ast_node,
        extension_ast_nodes=type_.extension_ast_nodes,
    )


def _recreate_interface_type(
    type_: GraphQLInterfaceType,
    new_types: NewTypesMap,
) -> GraphQLInterfaceType:
    return GraphQLInterfaceType(
        name=type_.name,
        fields=lambda: {
            name: recreate_field(field, new_types)
            for name, field in type_.fields.items()
        },
        interfaces=lambda: [
            rewrite_type(interface, new_types) for interface in type_.interfaces
        ],
        resolve_type=create_type_resolver(type_.resolve_type),
        description=type_.description,
        extensions=type_.extensions,
        ast_node=type_.ast_node,
        extension_ast_nodes=type_.extension_ast_nodes,
    )


def _recreate_union_type(
    type_: GraphQLUnionType,
    new_types: NewTypesMap,
) -> GraphQLUnionType:
    return GraphQLUnionType(
        name=type_.name,
        types=lambda: [rewrite_type(member, new_types) for member in type_.types],
        resolve_type=create_type_resolver(type_.resolve_type),
        description=type_.description,
        extensions=type_.extensions,
        ast_node=type_.ast_node,
        extension_ast_nodes=type_.extension_ast_nodes,
    )


def recreate_named_type(
    type_: GraphQLNamedType,
    new_types: NewTypesMap,
    *,
    is_local: bool = False,
) -> GraphQLNamedType:
    """Recreate a non-object type against the merged type table.

    Interfaces, unions and input objects are always rebuilt since they hold
    references to other types. Scalars and enums from the local schema are
    kept as they are, the ones from remote schemas are rebuilt to pass values
    through in their serialized form.
    """
    if is_scalar_type(type_):
        return _recreate_scalar_type(type_, is_local=is_local)
    if is_enum_type(type_):
        return _recreate_enum_type(type_, is_local=is_local)
    if is_input_object_type(type_):
        return _recreate_input_object_type(type_, new_types, is_local=is_local)
    if is_interface_type(type_):
        return _recreate_interface_type(type_, new_types)
    if is_union_type(type_):
        return _recreate_union_type(type_, new_types)

    raise TypeError(f"Can't recreate {type_!r}, it is not a non-object named type")
