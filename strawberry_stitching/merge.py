"""Merge independently defined schemas into one."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence

from graphql import (
    GraphQLField,
    GraphQLNamedType,
    GraphQLObjectType,
    GraphQLSchema,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_object_type,
    is_scalar_type,
    is_specified_scalar_type,
    is_union_type,
)

from .directives import MergeAnnotation
from .exceptions import FieldConflictError, InvalidSettingError, TypeKindConflictError
from .recreate import (
    NewTypesMap,
    recreate_arguments,
    recreate_field,
    recreate_named_type,
    rewrite_type,
)
from .resolvers import create_field_resolver, create_root_resolver
from .settings import (
    FIELD_CONFLICT_POLICIES,
    ROOT_FIELD_STRATEGIES,
    FieldConflictPolicy,
    RootFieldStrategy,
    strawberry_stitching_settings,
)
from .subschema import SchemaLike, SubSchema, as_subschema

if TYPE_CHECKING:
    from graphql import GraphQLIsTypeOfFn

    from .observers import DelegationObserver


__all__ = [
    "MergeOptions",
    "lower_first",
    "merge_object_types",
    "merge_root_types",
    "merge_schemas",
]

logger = logging.getLogger("strawberry_stitching")


@dataclasses.dataclass(frozen=True)
class TypeCandidate:
    subschema: SubSchema
    type: GraphQLNamedType


@dataclasses.dataclass(frozen=True)
class FieldCandidate:
    subschema: SubSchema
    field: GraphQLField


@dataclasses.dataclass(frozen=True)
class MergeOptions:
    """Options of one merge call.

    Attributes
    ----------
        root_field_strategy:
            "first" binds a root field to its first declaring schema,
            "fan_out" queries all of them and deep merges the results
        field_conflict_policy:
            "first" keeps the first definition of a shared object field,
            "strict" raises when definitions differ in shape
        identity:
            Identity field of parents and argument of entry point queries
        add_identity:
            Request the identity field in delegated sub-selections
        observers:
            Observers notified of every delegated call

    """

    root_field_strategy: RootFieldStrategy = "first"
    field_conflict_policy: FieldConflictPolicy = "first"
    identity: str = "id"
    add_identity: bool = True
    observers: Sequence[DelegationObserver] = ()

    @classmethod
    def from_settings(cls, **overrides: Any) -> MergeOptions:
        settings = strawberry_stitching_settings()
        options = {
            "root_field_strategy": settings["ROOT_FIELD_STRATEGY"],
            "field_conflict_policy": settings["FIELD_CONFLICT_POLICY"],
            "identity": settings["ENTRY_POINT_ID_ARGUMENT"],
            "add_identity": settings["ADD_IDENTITY_TO_SELECTIONS"],
        }
        options.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**options)

    def __post_init__(self):
        if self.root_field_strategy not in ROOT_FIELD_STRATEGIES:
            raise InvalidSettingError(
                "ROOT_FIELD_STRATEGY",
                self.root_field_strategy,
                ROOT_FIELD_STRATEGIES,
            )
        if self.field_conflict_policy not in FIELD_CONFLICT_POLICIES:
            raise InvalidSettingError(
                "FIELD_CONFLICT_POLICY",
                self.field_conflict_policy,
                FIELD_CONFLICT_POLICIES,
            )

    def resolver_options(self) -> dict[str, Any]:
        return {
            "observers": self.observers,
            "identity": self.identity,
            "add_identity": self.add_identity,
        }


def lower_first(name: str) -> str:
    """Return the entry point query name of a type (`FooBar` -> `fooBar`)."""
    return name[:1].lower() + name[1:]


def get_candidate_attribute(candidates: Iterable[Any], attribute: str) -> Any:
    """Return the first non-empty `attribute` of the candidates."""
    for candidate in candidates:
        value = getattr(candidate, attribute, None)
        if value:
            return value
    return None


def _field_signature(field: GraphQLField) -> str:
    args = ", ".join(f"{name}: {arg.type}" for name, arg in field.args.items())
    return f"({args}): {field.type}" if args else str(field.type)


def _create_is_type_of(
    original: Optional[GraphQLIsTypeOfFn],
) -> Optional[GraphQLIsTypeOfFn]:
    if original is None:
        return None

    def is_type_of(value: Any, info: Any) -> Any:
        # Delegated values are plain mappings
        return isinstance(value, Mapping) or original(value, info)

    return is_type_of


def _collect_object_fields(
    type_name: str,
    candidates: Sequence[TypeCandidate],
    policy: FieldConflictPolicy,
) -> dict[str, FieldCandidate]:
    fields: dict[str, FieldCandidate] = {}
    for candidate in candidates:
        annotations = candidate.subschema.annotations
        for name, field in candidate.type.fields.items():
            if annotations.is_discarded(type_name, name):
                continue

            existing = fields.get(name)
            if existing is None:
                fields[name] = FieldCandidate(candidate.subschema, field)
                continue

            if policy == "strict":
                first_signature = _field_signature(existing.field)
                other_signature = _field_signature(field)
                if first_signature != other_signature:
                    raise FieldConflictError(
                        type_name,
                        name,
                        first_signature,
                        other_signature,
                    )

            logger.debug(
                "Field %s.%s of %s is shadowed by the one of %s",
                type_name,
                name,
                candidate.subschema,
                existing.subschema,
            )
    return fields


def _get_entry_point(
    subschema: SubSchema,
    type_name: str,
    *,
    shared: bool,
) -> Optional[str]:
    entry_point = subschema.annotations.merge_query(type_name) or lower_first(
        type_name,
    )
    query_type = subschema.schema.query_type
    if query_type is None or entry_point not in query_type.fields:
        logger.log(
            logging.WARNING if shared else logging.DEBUG,
            "Schema %s has no %r query to fetch %s fields from, they will be "
            "fetched from its root instead",
            subschema,
            entry_point,
            type_name,
        )
        return None
    return entry_point


def merge_object_types(
    candidates: Sequence[TypeCandidate],
    new_types: NewTypesMap,
    options: MergeOptions,
) -> GraphQLObjectType:
    """Merge object types sharing a name into one.

    Fields are taken from the candidates in order, the first definition of a
    field winning. Fields of the local schema keep their resolvers, all the
    others are fetched from the schema owning them.
    """
    name = candidates[0].type.name
    fields = _collect_object_fields(name, candidates, options.field_conflict_policy)

    # Metadata comes from the base definition, not from @merge extensions
    metadata = [
        c.type
        for c in candidates
        if not isinstance(
            c.subschema.annotations.get_type_annotation(name),
            MergeAnnotation,
        )
    ] or [c.type for c in candidates]

    entry_points: dict[SubSchema, Optional[str]] = {}
    resolvers = {}
    for field_name, field_candidate in fields.items():
        owner = field_candidate.subschema
        if owner.is_local:
            resolvers[field_name] = field_candidate.field.resolve
            continue

        if owner not in entry_points:
            entry_points[owner] = _get_entry_point(
                owner,
                name,
                shared=len(candidates) > 1,
            )
        resolvers[field_name] = create_field_resolver(
            owner,
            entry_points[owner],
            **options.resolver_options(),
        )

    def create_fields() -> dict[str, GraphQLField]:
        return {
            field_name: recreate_field(
                field_candidate.field,
                new_types,
                resolve=resolvers[field_name],
                subscribe=field_candidate.field.subscribe,
            )
            for field_name, field_candidate in fields.items()
        }

    def create_interfaces():
        interfaces = {
            interface.name: interface
            for candidate in candidates
            for interface in candidate.type.interfaces
        }
        return [rewrite_type(interface, new_types) for interface in interfaces.values()]

    local_candidate = next((c for c in candidates if c.subschema.is_local), None)
    return GraphQLObjectType(
        name=name,
        fields=create_fields,
        interfaces=create_interfaces,
        is_type_of=_create_is_type_of(
            local_candidate.type.is_type_of if local_candidate else None,
        ),
        description=get_candidate_attribute(metadata, "description"),
        extensions=get_candidate_attribute(metadata, "extensions"),
        ast_node=get_candidate_attribute(metadata, "ast_node"),
        extension_ast_nodes=get_candidate_attribute(metadata, "extension_ast_nodes"),
    )


def merge_root_types(
    candidates: Sequence[TypeCandidate],
    new_types: NewTypesMap,
    options: MergeOptions,
    *,
    is_subscription: bool = False,
) -> Optional[GraphQLObjectType]:
    """Merge the Query, Mutation or Subscription types of several schemas.

    Every root field is bound to the first schema declaring it, or, with the
    "fan_out" strategy, to all of the remote schemas declaring it.
    """
    if not candidates:
        return None

    owners: dict[str, list[FieldCandidate]] = {}
    for candidate in candidates:
        annotations = candidate.subschema.annotations
        for name, field in candidate.type.fields.items():
            if annotations.is_discarded(candidate.type.name, name):
                continue
            owners.setdefault(name, []).append(
                FieldCandidate(candidate.subschema, field),
            )

    fields_config: dict[str, dict[str, Any]] = {}
    for name, field_candidates in owners.items():
        first = field_candidates[0]
        declared = [c.field for c in field_candidates]

        resolve = None
        subscribe = None
        if first.subschema.is_local or is_subscription:
            resolve = first.field.resolve
            subscribe = first.field.subscribe
        elif options.root_field_strategy == "fan_out":
            resolve = create_root_resolver(
                [c.subschema for c in field_candidates if not c.subschema.is_local],
                **options.resolver_options(),
            )
        else:
            resolve = create_root_resolver(
                [first.subschema],
                **options.resolver_options(),
            )

        fields_config[name] = {
            "type": get_candidate_attribute(declared, "type"),
            "args": get_candidate_attribute(declared, "args") or {},
            "resolve": resolve,
            "subscribe": subscribe,
            "description": get_candidate_attribute(declared, "description"),
            "deprecation_reason": get_candidate_attribute(
                declared,
                "deprecation_reason",
            ),
            "extensions": get_candidate_attribute(declared, "extensions"),
            "ast_node": get_candidate_attribute(declared, "ast_node"),
        }

    def create_fields() -> dict[str, GraphQLField]:
        return {
            name: GraphQLField(
                rewrite_type(config["type"], new_types),
                args=recreate_arguments(config["args"], new_types),
                resolve=config["resolve"],
                subscribe=config["subscribe"],
                description=config["description"],
                deprecation_reason=config["deprecation_reason"],
                extensions=config["extensions"],
                ast_node=config["ast_node"],
            )
            for name, config in fields_config.items()
        }

    root_types = [c.type for c in candidates]
    return GraphQLObjectType(
        name=get_candidate_attribute(root_types, "name"),
        fields=create_fields,
        description=get_candidate_attribute(root_types, "description"),
        extensions=get_candidate_attribute(root_types, "extensions"),
        ast_node=get_candidate_attribute(root_types, "ast_node"),
    )


def _kind(type_: GraphQLNamedType) -> str:
    if is_object_type(type_):
        return "object"
    if is_interface_type(type_):
        return "interface"
    if is_union_type(type_):
        return "union"
    if is_enum_type(type_):
        return "enum"
    if is_input_object_type(type_):
        return "input"
    return "scalar"


def _root_types(schema: GraphQLSchema) -> list[GraphQLObjectType]:
    return [
        type_
        for type_ in (schema.query_type, schema.mutation_type, schema.subscription_type)
        if type_ is not None
    ]


def _is_type_to_include(subschema: SubSchema, type_: GraphQLNamedType) -> bool:
    if type_.name.startswith("__"):
        return False
    if any(type_ is root for root in _root_types(subschema.schema)):
        return False
    return not (is_scalar_type(type_) and is_specified_scalar_type(type_))


def _index_types(
    subschemas: Sequence[SubSchema],
) -> dict[str, list[TypeCandidate]]:
    candidates: dict[str, list[TypeCandidate]] = {}
    for subschema in subschemas:
        for name, type_ in subschema.schema.type_map.items():
            if _is_type_to_include(subschema, type_):
                candidates.setdefault(name, []).append(TypeCandidate(subschema, type_))
    return candidates


def merge_schemas(
    schemas: Sequence[SchemaLike],
    *,
    local_schema: Optional[SchemaLike] = None,
    root_field_strategy: Optional[RootFieldStrategy] = None,
    field_conflict_policy: Optional[FieldConflictPolicy] = None,
    identity: Optional[str] = None,
    add_identity: Optional[bool] = None,
    observers: Optional[Sequence[DelegationObserver]] = None,
) -> GraphQLSchema:
    """Merge `schemas` into a single executable schema.

    Args:
    ----
        schemas:
            Source schemas, in order of precedence. Can be graphql-core
            schemas, strawberry schemas or `SubSchema` instances
        local_schema:
            Schema whose resolvers are used as they are. It takes precedence
            over all the other schemas
        root_field_strategy:
            Overrides `ROOT_FIELD_STRATEGY` from the settings
        field_conflict_policy:
            Overrides `FIELD_CONFLICT_POLICY` from the settings
        identity:
            Overrides `ENTRY_POINT_ID_ARGUMENT` from the settings
        add_identity:
            Overrides `ADD_IDENTITY_TO_SELECTIONS` from the settings
        observers:
            Observers notified of every delegated call

    Raises:
    ------
        TypeKindConflictError: when a type name is an object type in one
            schema and another kind of type in another one
        FieldConflictError: when the "strict" policy is used and two schemas
            declare the same object field with a different shape

    """
    options = MergeOptions.from_settings(
        root_field_strategy=root_field_strategy,
        field_conflict_policy=field_conflict_policy,
        identity=identity,
        add_identity=add_identity,
        observers=tuple(observers) if observers is not None else None,
    )

    subschemas = [
        as_subschema(schema, name=f"schema{index}")
        for index, schema in enumerate(schemas)
    ]
    if local_schema is not None:
        subschemas.insert(0, as_subschema(local_schema, name="local", is_local=True))

    new_types: NewTypesMap = {}
    for name, candidates in _index_types(subschemas).items():
        kinds = [_kind(candidate.type) for candidate in candidates]
        if all(kind == "object" for kind in kinds):
            new_types[name] = merge_object_types(candidates, new_types, options)
        elif "object" not in kinds:
            first = candidates[0]
            new_types[name] = recreate_named_type(
                first.type,
                new_types,
                is_local=first.subschema.is_local,
            )
        else:
            raise TypeKindConflictError(name, kinds)

        logger.debug(
            "Merged %s %s from %s",
            kinds[0],
            name,
            ", ".join(str(c.subschema) for c in candidates),
        )

    query = merge_root_types(
        [TypeCandidate(s, s.schema.query_type) for s in subschemas if s.schema.query_type],
        new_types,
        options,
    )
    mutation = merge_root_types(
        [
            TypeCandidate(s, s.schema.mutation_type)
            for s in subschemas
            if s.schema.mutation_type
        ],
        new_types,
        options,
    )
    subscription = merge_root_types(
        [
            TypeCandidate(s, s.schema.subscription_type)
            for s in subschemas
            if s.schema.subscription_type
        ],
        new_types,
        options,
        is_subscription=True,
    )

    return GraphQLSchema(
        query=query,
        mutation=mutation,
        subscription=subscription,
        types=list(new_types.values()),
    )
