"""Rewrite field requests into documents for source schemas and run them."""

from __future__ import annotations

import contextlib
import dataclasses
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

from graphql import (
    ArgumentNode,
    BooleanValueNode,
    DocumentNode,
    EnumValueNode,
    FieldNode,
    FloatValueNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLID,
    GraphQLNamedType,
    InlineFragmentNode,
    IntValueNode,
    ListValueNode,
    NameNode,
    NullValueNode,
    ObjectFieldNode,
    ObjectValueNode,
    OperationDefinitionNode,
    OperationType,
    SelectionSetNode,
    StringValueNode,
    VariableNode,
    get_named_type,
    is_abstract_type,
    is_composite_type,
    is_enum_type,
    is_input_object_type,
    is_interface_type,
    is_list_type,
    is_non_null_type,
    is_object_type,
    is_specified_scalar_type,
    type_from_ast,
    visit,
)
from graphql.language import Visitor
from graphql.language.visitor import REMOVE
from graphql.utilities import do_types_overlap

from .observers import DelegationEvent
from .results import PathedError, child_errors, resolve_value
from .utils.gql_compat import get_root_type, get_variable_values, node_list

if TYPE_CHECKING:
    from graphql import (
        GraphQLInputType,
        GraphQLResolveInfo,
        GraphQLSchema,
        ValueNode,
    )

    from .directives import SchemaAnnotations
    from .observers import DelegationObserver
    from .subschema import SubSchema

__all__ = [
    "DelegationRequest",
    "SelectionRewrite",
    "build_document",
    "delegate_to_schema",
    "execute_request",
    "get_response_key",
]

logger = logging.getLogger("strawberry_stitching")

TYPENAME = "__typename"


def get_response_key(info: GraphQLResolveInfo) -> str:
    node = info.field_nodes[0]
    return node.alias.value if node.alias else node.name.value


def _field(name: str) -> FieldNode:
    return FieldNode(
        name=NameNode(value=name),
        arguments=node_list(()),
        directives=node_list(()),
    )


@dataclasses.dataclass(frozen=True)
class SelectionRewrite:
    """The caller's field wrapped under an entry point query.

    `entry_field(id_arg: id_value) { ...inner_selection }`
    """

    entry_field: str
    id_arg: str
    id_value: Any
    inner_selection: SelectionSetNode


@dataclasses.dataclass(frozen=True)
class DelegationRequest:
    """What to execute on a source schema to resolve one outer field."""

    operation: OperationType
    field_name: str
    response_key: str
    arguments: Tuple[ArgumentNode, ...] = ()
    selection_set: Optional[SelectionSetNode] = None
    rewrite: Optional[SelectionRewrite] = None

    @property
    def root_field(self) -> str:
        return self.rewrite.entry_field if self.rewrite else self.field_name

    @classmethod
    def for_field(
        cls,
        info: GraphQLResolveInfo,
        operation: OperationType = OperationType.QUERY,
    ) -> DelegationRequest:
        """Execute the same field, with the same arguments, on the source root."""
        selections = [
            selection
            for node in info.field_nodes
            if node.selection_set is not None
            for selection in node.selection_set.selections
        ]
        return cls(
            operation=operation,
            field_name=info.field_name,
            response_key=get_response_key(info),
            arguments=tuple(info.field_nodes[0].arguments or ()),
            selection_set=(
                SelectionSetNode(selections=node_list(selections))
                if selections
                else None
            ),
        )

    @classmethod
    def for_entry_point(
        cls,
        info: GraphQLResolveInfo,
        entry_field: str,
        id_arg: str,
        id_value: Any,
    ) -> DelegationRequest:
        """Fetch the field through `entry_field(id_arg: id_value)`."""
        return cls(
            operation=OperationType.QUERY,
            field_name=info.field_name,
            response_key=get_response_key(info),
            rewrite=SelectionRewrite(
                entry_field=entry_field,
                id_arg=id_arg,
                id_value=id_value,
                inner_selection=SelectionSetNode(
                    selections=node_list(info.field_nodes),
                ),
            ),
        )


class _VariableInliner(Visitor):
    def __init__(self, literals: Mapping[str, ValueNode]):
        super().__init__()
        self.literals = literals

    def _is_unset(self, value: Any) -> bool:
        return (
            isinstance(value, VariableNode)
            and value.name.value not in self.literals
        )

    def enter_argument(self, node, *_args):
        if self._is_unset(node.value):
            return REMOVE
        return None

    def enter_object_field(self, node, *_args):
        if self._is_unset(node.value):
            return REMOVE
        return None

    def enter_variable(self, node, *_args):
        # Unset variables nested in lists and input objects stand for null
        return self.literals.get(node.name.value, NullValueNode())


def _untyped_literal(value: Any) -> ValueNode:
    if value is None:
        return NullValueNode()
    if isinstance(value, bool):
        return BooleanValueNode(value=value)
    if isinstance(value, int):
        return IntValueNode(value=str(value))
    if isinstance(value, float):
        return FloatValueNode(value=repr(value))
    if isinstance(value, str):
        return StringValueNode(value=value)
    if isinstance(value, Mapping):
        return ObjectValueNode(
            fields=node_list(
                ObjectFieldNode(name=NameNode(value=key), value=_untyped_literal(v))
                for key, v in value.items()
            ),
        )
    if isinstance(value, (list, tuple)):
        return ListValueNode(values=node_list(_untyped_literal(v) for v in value))

    raise TypeError(f"Can't convert {value!r} to a GraphQL literal")


def value_to_literal(value: Any, type_: GraphQLInputType) -> ValueNode:
    """Convert an internal input value to a literal of `type_`.

    Scalars are converted from their serialized form, so remote custom scalars
    (which serialize as themselves) keep structured values like JSON objects.
    """
    if is_non_null_type(type_):
        return value_to_literal(value, type_.of_type)
    if value is None:
        return NullValueNode()

    if is_list_type(type_):
        if isinstance(value, (list, tuple)):
            return ListValueNode(
                values=node_list(value_to_literal(v, type_.of_type) for v in value),
            )
        return value_to_literal(value, type_.of_type)

    if is_input_object_type(type_):
        if not isinstance(value, Mapping):
            raise TypeError(f"Can't convert {value!r} to a {type_.name} literal")
        return ObjectValueNode(
            fields=node_list(
                ObjectFieldNode(
                    name=NameNode(value=name),
                    value=value_to_literal(value[field.out_name or name], field.type),
                )
                for name, field in type_.fields.items()
                if (field.out_name or name) in value
            ),
        )

    if is_enum_type(type_):
        return EnumValueNode(value=type_.serialize(value))

    return _untyped_literal(type_.serialize(value))


def _variable_literals(info: GraphQLResolveInfo) -> dict[str, ValueNode]:
    values = get_variable_values(info)
    literals: dict[str, ValueNode] = {}
    for definition in info.operation.variable_definitions or ():
        name = definition.variable.name.value
        if name not in values:
            continue

        type_ = type_from_ast(info.schema, definition.type)
        literals[name] = value_to_literal(values[name], type_)
    return literals


def inline_variables(node: FieldNode, info: GraphQLResolveInfo) -> FieldNode:
    """Replace variables with literals, source documents declare no variables."""
    if not info.operation.variable_definitions:
        return node
    return visit(node, _VariableInliner(_variable_literals(info)))


class _SelectionFilter:
    """Keep only the selections a source schema is able to answer."""

    def __init__(
        self,
        schema: GraphQLSchema,
        annotations: SchemaAnnotations,
        fragments: Mapping[str, FragmentDefinitionNode],
        *,
        identity: str,
        add_identity: bool,
    ):
        self.schema = schema
        self.annotations = annotations
        self.fragments = fragments
        self.identity = identity
        self.add_identity = add_identity

    def filter_selection_set(
        self,
        parent_type: GraphQLNamedType,
        selection_set: SelectionSetNode,
    ) -> SelectionSetNode:
        selections = []
        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                filtered = self._filter_field(parent_type, selection)
            elif isinstance(selection, InlineFragmentNode):
                filtered = self._filter_fragment(
                    parent_type,
                    selection.type_condition,
                    selection.directives,
                    selection.selection_set,
                )
            elif isinstance(selection, FragmentSpreadNode):
                fragment = self.fragments.get(selection.name.value)
                filtered = (
                    self._filter_fragment(
                        parent_type,
                        fragment.type_condition,
                        selection.directives,
                        fragment.selection_set,
                    )
                    if fragment is not None
                    else None
                )
            else:  # pragma: no cover
                filtered = None

            if filtered is not None:
                selections.append(filtered)

        return SelectionSetNode(selections=node_list(selections))

    def complete_selection_set(
        self,
        type_: GraphQLNamedType,
        selection_set: SelectionSetNode,
    ) -> SelectionSetNode:
        """Add the fields needed to resolve abstract types and to backfill."""
        selections = list(selection_set.selections)
        keys = {
            (s.alias or s.name).value
            for s in selections
            if isinstance(s, FieldNode)
        }

        if is_abstract_type(type_) and TYPENAME not in keys:
            selections.append(_field(TYPENAME))
        if (
            self.add_identity
            and (is_object_type(type_) or is_interface_type(type_))
            and self.identity in type_.fields
            and self.identity not in keys
        ):
            selections.append(_field(self.identity))
        if not selections:
            selections.append(_field(TYPENAME))

        return SelectionSetNode(selections=node_list(selections))

    def _filter_field(
        self,
        parent_type: GraphQLNamedType,
        node: FieldNode,
    ) -> FieldNode | None:
        name = node.name.value
        if name == TYPENAME:
            return node
        if not (is_object_type(parent_type) or is_interface_type(parent_type)):
            return None

        field = parent_type.fields.get(name)
        if field is None or self.annotations.is_discarded(parent_type.name, name):
            return None

        arguments = [arg for arg in node.arguments or () if arg.name.value in field.args]

        selection_set = node.selection_set
        named_type = get_named_type(field.type)
        if selection_set is not None and is_composite_type(named_type):
            selection_set = self.complete_selection_set(
                named_type,
                self.filter_selection_set(named_type, selection_set),
            )

        return FieldNode(
            alias=node.alias,
            name=node.name,
            arguments=node_list(arguments),
            directives=node.directives,
            selection_set=selection_set,
        )

    def _filter_fragment(
        self,
        parent_type: GraphQLNamedType,
        type_condition: Any,
        directives: Any,
        selection_set: SelectionSetNode,
    ) -> InlineFragmentNode | None:
        if type_condition is None:
            type_ = parent_type
        else:
            type_ = self.schema.get_type(type_condition.name.value)
            if (
                type_ is None
                or not is_composite_type(type_)
                or not do_types_overlap(self.schema, type_, parent_type)
            ):
                return None

        filtered = self.filter_selection_set(type_, selection_set)
        if not filtered.selections:
            return None

        return InlineFragmentNode(
            type_condition=type_condition,
            directives=directives,
            selection_set=filtered,
        )


def _build_arguments(
    arguments: Sequence[ArgumentNode],
    field_args: Mapping[str, Any],
) -> list[ArgumentNode]:
    return [arg for arg in arguments if arg.name.value in field_args]


def build_document(
    target: SubSchema,
    request: DelegationRequest,
    info: GraphQLResolveInfo,
    *,
    identity: str = "id",
    add_identity: bool = True,
) -> DocumentNode:
    """Build the document executing `request` on `target`."""
    root_type = get_root_type(target.schema, request.operation)
    if root_type is None:
        raise GraphQLError(
            f"Schema {target} does not support {request.operation.value} operations",
        )

    field = root_type.fields.get(request.root_field)
    if field is None:
        raise GraphQLError(
            f'Schema {target} has no "{request.root_field}" field on '
            f"{root_type.name}",
        )

    selection_filter = _SelectionFilter(
        target.schema,
        target.annotations,
        info.fragments,
        identity=identity,
        add_identity=add_identity,
    )
    named_type = get_named_type(field.type)

    rewrite = request.rewrite
    if rewrite is not None:
        id_type = (
            field.args[rewrite.id_arg].type
            if rewrite.id_arg in field.args
            else GraphQLID
        )
        # Parent values hold identities in their serialized form already
        id_literal = (
            value_to_literal(rewrite.id_value, id_type)
            if is_specified_scalar_type(get_named_type(id_type))
            else _untyped_literal(rewrite.id_value)
        )
        arguments = [ArgumentNode(name=NameNode(value=rewrite.id_arg), value=id_literal)]
        selection_set = selection_filter.filter_selection_set(
            named_type,
            rewrite.inner_selection,
        )
        if not selection_set.selections:
            selection_set = selection_filter.complete_selection_set(
                named_type,
                selection_set,
            )
    else:
        arguments = _build_arguments(request.arguments, field.args)
        selection_set = request.selection_set
        if selection_set is not None and is_composite_type(named_type):
            selection_set = selection_filter.complete_selection_set(
                named_type,
                selection_filter.filter_selection_set(named_type, selection_set),
            )

    root = FieldNode(
        name=NameNode(value=request.root_field),
        arguments=node_list(arguments),
        directives=node_list(()),
        selection_set=selection_set,
    )
    root = inline_variables(root, info)

    return DocumentNode(
        definitions=node_list(
            [
                OperationDefinitionNode(
                    operation=request.operation,
                    variable_definitions=node_list(()),
                    directives=node_list(()),
                    selection_set=SelectionSetNode(selections=node_list([root])),
                ),
            ],
        ),
    )


async def execute_request(
    target: SubSchema,
    request: DelegationRequest,
    info: GraphQLResolveInfo,
    *,
    observers: Sequence[DelegationObserver] = (),
    identity: str = "id",
    add_identity: bool = True,
) -> tuple[Any, list[PathedError]]:
    """Execute `request` on `target`.

    Return the value of the source root field and the errors reported for
    it, with paths relative to that value.
    """
    document = build_document(
        target,
        request,
        info,
        identity=identity,
        add_identity=add_identity,
    )
    event = DelegationEvent(
        schema_name=str(target),
        operation=request.operation.value,
        field_name=request.root_field,
        response_key=request.response_key,
        entry_point=request.rewrite.entry_field if request.rewrite else None,
        path=tuple(info.path.as_list()),
    )

    logger.debug(
        "Delegating %s %s.%s to %s",
        request.operation.value,
        info.parent_type.name,
        request.response_key,
        target,
    )
    with contextlib.ExitStack() as stack:
        for observer in observers:
            stack.enter_context(observer.on_delegate(event))
        result = await target.execute(document, info.context)

    root_key = request.root_field
    data = result.data.get(root_key) if result.data else None
    errors = []
    for error in result.errors or ():
        pathed = PathedError.from_error(error)
        if not pathed.path:
            # Errors without a path (e.g. validation) belong to the field itself
            errors.append(pathed)
        elif pathed.path[0] == root_key:
            errors.append(pathed.sliced())

    if errors:
        logger.debug(
            "%s reported %d error(s) for %s",
            target,
            len(errors),
            request.root_field,
        )

    return data, errors


def unwrap_result(
    request: DelegationRequest,
    value: Any,
    errors: Sequence[PathedError],
) -> tuple[Any, list[PathedError]]:
    """Take the caller's field out of an entry point result."""
    if request.rewrite is None:
        return value, list(errors)

    own = [error for error in errors if not error.path]
    if own:
        return None, own
    if value is None:
        # The wrapper was nulled by a failing field, report it on this field
        return None, [PathedError(error.error) for error in errors]

    key = request.response_key
    field_value = value.get(key) if isinstance(value, Mapping) else None
    return field_value, child_errors(errors, key)


async def delegate_to_schema(
    target: SubSchema,
    request: DelegationRequest,
    info: GraphQLResolveInfo,
    *,
    observers: Sequence[DelegationObserver] = (),
    identity: str = "id",
    add_identity: bool = True,
) -> Any:
    value, errors = await execute_request(
        target,
        request,
        info,
        observers=observers,
        identity=identity,
        add_identity=add_identity,
    )
    value, errors = unwrap_result(request, value, errors)
    return resolve_value(value, errors)
