"""Resolvers binding merged fields to the schemas that own them."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional, Sequence

from graphql import GraphQLError

from .delegate import (
    DelegationRequest,
    delegate_to_schema,
    execute_request,
    get_response_key,
)
from .results import (
    StitchedResult,
    child_errors,
    merge_results,
    resolve_value,
)

if TYPE_CHECKING:
    from graphql import GraphQLFieldResolver, GraphQLResolveInfo

    from .observers import DelegationObserver
    from .subschema import SubSchema

__all__ = [
    "create_field_resolver",
    "create_root_resolver",
    "get_parent_value",
]

_missing = object()


def get_parent_value(parent: Any, key: str) -> Any:
    """Return `parent[key]` (or its attribute), `_missing` when absent.

    Falsy values are values: only absence triggers a delegation.
    """
    if isinstance(parent, Mapping):
        return parent.get(key, _missing)
    return getattr(parent, key, _missing)


def create_field_resolver(
    subschema: SubSchema,
    merge_query: Optional[str] = None,
    *,
    observers: Sequence[DelegationObserver] = (),
    identity: str = "id",
    add_identity: bool = True,
) -> GraphQLFieldResolver:
    """Resolve a field from its parent, or fetch it from `subschema`.

    When the parent does not hold the field yet, it is fetched with
    `merge_query(id: parent.id) { field }` if `merge_query` is given, or by
    executing the same field on the root of `subschema` otherwise.

    Every missing field is fetched by its own call, so a selection asking for
    two missing fields of one schema sends it two entry point queries. The
    calls run concurrently, each carrying only its own sub-selection.
    """

    def resolve(parent: Any, info: GraphQLResolveInfo, **_args: Any) -> Any:
        response_key = get_response_key(info)

        value = get_parent_value(parent, response_key)
        if value is not _missing:
            errors = (
                child_errors(parent.errors, response_key)
                if isinstance(parent, StitchedResult)
                else []
            )
            return resolve_value(value, errors)

        if merge_query is None:
            request = DelegationRequest.for_field(info)
        else:
            id_value = get_parent_value(parent, identity)
            if id_value is _missing or id_value is None:
                raise GraphQLError(
                    f"Can't fetch {info.parent_type.name}.{info.field_name} "
                    f'from {subschema}: the parent value has no "{identity}"',
                )
            request = DelegationRequest.for_entry_point(
                info,
                merge_query,
                identity,
                id_value,
            )

        return delegate_to_schema(
            subschema,
            request,
            info,
            observers=observers,
            identity=identity,
            add_identity=add_identity,
        )

    return resolve


def create_root_resolver(
    subschemas: Sequence[SubSchema],
    *,
    observers: Sequence[DelegationObserver] = (),
    identity: str = "id",
    add_identity: bool = True,
) -> GraphQLFieldResolver:
    """Forward a root field to the schema(s) declaring it.

    With a single schema the result is returned as it is. With several ones
    they are all queried concurrently and their results deep merged.
    """
    options = {
        "observers": observers,
        "identity": identity,
        "add_identity": add_identity,
    }

    if len(subschemas) == 1:
        (subschema,) = subschemas

        def resolve(_root: Any, info: GraphQLResolveInfo, **_args: Any) -> Any:
            request = DelegationRequest.for_field(info, info.operation.operation)
            return delegate_to_schema(subschema, request, info, **options)

        return resolve

    async def resolve_fan_out(
        _root: Any,
        info: GraphQLResolveInfo,
        **_args: Any,
    ) -> Any:
        request = DelegationRequest.for_field(info, info.operation.operation)
        results = await asyncio.gather(
            *(
                execute_request(subschema, request, info, **options)
                for subschema in subschemas
            ),
        )

        for result_value, errors in results:
            # Raises when a schema failed the field itself
            resolve_value(
                None,
                [e for e in errors if not e.path or result_value is None],
            )

        value, errors = merge_results(results)
        return resolve_value(value, errors)

    return resolve_fan_out
