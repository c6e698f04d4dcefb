from .delegate import DelegationRequest, SelectionRewrite, delegate_to_schema
from .directives import (
    DISCARD,
    STITCHING_DIRECTIVES_SDL,
    Discard,
    Merge,
    MergeAnnotation,
    SchemaAnnotations,
)
from .exceptions import (
    FieldConflictError,
    InvalidSettingError,
    MalformedDirectiveError,
    StitchingError,
    TypeKindConflictError,
)
from .merge import MergeOptions, merge_schemas
from .observers import DelegationCounter, DelegationEvent, DelegationObserver
from .resolvers import create_field_resolver, create_root_resolver
from .subschema import SubSchema

__all__ = [
    "DISCARD",
    "STITCHING_DIRECTIVES_SDL",
    "DelegationCounter",
    "DelegationEvent",
    "DelegationObserver",
    "DelegationRequest",
    "Discard",
    "FieldConflictError",
    "InvalidSettingError",
    "MalformedDirectiveError",
    "Merge",
    "MergeAnnotation",
    "MergeOptions",
    "SchemaAnnotations",
    "SelectionRewrite",
    "StitchingError",
    "SubSchema",
    "TypeKindConflictError",
    "create_field_resolver",
    "create_root_resolver",
    "delegate_to_schema",
    "merge_schemas",
]
