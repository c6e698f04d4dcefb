"""Code for interacting with Django settings."""

from typing import cast

from django.conf import settings
from typing_extensions import Literal, TypedDict

RootFieldStrategy = Literal["first", "fan_out"]
FieldConflictPolicy = Literal["first", "strict"]

ROOT_FIELD_STRATEGIES = ("first", "fan_out")
FIELD_CONFLICT_POLICIES = ("first", "strict")


class StrawberryStitchingSettings(TypedDict):
    """Dictionary defining the shape `settings.STRAWBERRY_STITCHING` should have.

    All settings are optional and have defaults as described in their docstrings and
    defined in `DEFAULT_STITCHING_SETTINGS`.
    """

    #: How a root field declared by more than one source is resolved.
    #: "first" binds it to the first declaring source, "fan_out" queries every
    #: declaring source concurrently and deep merges the results.
    ROOT_FIELD_STRATEGY: RootFieldStrategy

    #: What happens when two sources declare the same field on a shared
    #: object type. "first" keeps the first definition, "strict" raises when
    #: the definitions have a different shape.
    FIELD_CONFLICT_POLICY: FieldConflictPolicy

    #: Name of the identity field read from parents and passed as the
    #: argument of entry point queries.
    ENTRY_POINT_ID_ARGUMENT: str

    #: If True, the identity field is requested in every delegated object
    #: sub-selection whose type defines it, so later backfills can use it.
    ADD_IDENTITY_TO_SELECTIONS: bool


DEFAULT_STITCHING_SETTINGS = StrawberryStitchingSettings(
    ROOT_FIELD_STRATEGY="first",
    FIELD_CONFLICT_POLICY="first",
    ENTRY_POINT_ID_ARGUMENT="id",
    ADD_IDENTITY_TO_SELECTIONS=True,
)


def strawberry_stitching_settings() -> StrawberryStitchingSettings:
    """Get strawberry stitching settings.

    Return the dictionary from `settings.STRAWBERRY_STITCHING`, with defaults
    for missing keys.

    Preferred to direct access for the type hints and defaults.
    """
    defaults = DEFAULT_STITCHING_SETTINGS
    return cast(
        "StrawberryStitchingSettings",
        {**defaults, **getattr(settings, "STRAWBERRY_STITCHING", {})},
    )
