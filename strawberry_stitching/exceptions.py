from __future__ import annotations

from functools import cached_property
from typing import TYPE_CHECKING

from strawberry.exceptions.exception import StrawberryException

if TYPE_CHECKING:
    from collections.abc import Sequence

    from strawberry.exceptions.exception_source import ExceptionSource


class StitchingError(StrawberryException):
    """Base class for errors raised while merging schemas."""

    def __init__(self, message: str):
        self.message = message
        self.rich_message = message
        self.annotation_message = "schema merge error"

        super().__init__(self.message)

    @cached_property
    def exception_source(self) -> ExceptionSource | None:  # pragma: no cover
        # Merged types usually come from SDL or introspection, not python code
        return None


class TypeKindConflictError(StitchingError):
    def __init__(self, type_name: str, kinds: Sequence[str]):
        self.type_name = type_name
        self.kinds = list(kinds)

        super().__init__(
            f"Can't merge non-Object type {type_name} with Object type of same name",
        )
        self.rich_message = (
            f"Type `[underline]{type_name}[/]` is declared as "
            f"{self.kinds_str} across the merged schemas"
        )
        self.suggestion = (
            "To fix this error, rename one of the types so that only object "
            "types share a name"
        )
        self.annotation_message = "conflicting type kinds"

    @property
    def kinds_str(self) -> str:
        kinds = list(dict.fromkeys(self.kinds))
        if len(kinds) == 1:
            return kinds[0]

        head = ", ".join(kinds[:-1])
        return f"{head} and {kinds[-1]}"


class FieldConflictError(StitchingError):
    def __init__(
        self,
        type_name: str,
        field_name: str,
        first_signature: str,
        other_signature: str,
    ):
        self.type_name = type_name
        self.field_name = field_name

        super().__init__(
            f'Field "{type_name}.{field_name}" is declared as "{first_signature}" '
            f'and as "{other_signature}" by different schemas',
        )
        self.rich_message = (
            f"Field `[underline]{type_name}.{field_name}[/]` has incompatible "
            "definitions across the merged schemas"
        )
        self.suggestion = (
            "To fix this error, give both definitions the same type and "
            "arguments, or mark one of them with @discard"
        )
        self.annotation_message = "conflicting field definitions"


class MalformedDirectiveError(StitchingError):
    def __init__(self, directive_name: str, location: str, argument_name: str):
        self.directive_name = directive_name
        self.location = location

        super().__init__(
            f'Directive "@{directive_name}" on "{location}" is missing its '
            f'required argument "{argument_name}"',
        )
        self.suggestion = (
            f'To fix this error, pass "{argument_name}" to @{directive_name}'
        )
        self.annotation_message = "malformed directive"


class InvalidSettingError(StitchingError):
    def __init__(self, setting_name: str, value: object, choices: Sequence[str]):
        choices_str = ", ".join(f'"{choice}"' for choice in choices)
        super().__init__(
            f'Invalid value {value!r} for "{setting_name}", expected one of '
            f"{choices_str}",
        )
        self.annotation_message = "invalid setting"
