"""Delegated results and the partial errors attached to them."""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Tuple, Union

from graphql import GraphQLError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

__all__ = [
    "PathedError",
    "StitchedResult",
    "annotate_errors",
    "child_errors",
    "merge_results",
    "resolve_value",
]

PathSegment = Union[str, int]


@dataclasses.dataclass(frozen=True)
class PathedError:
    """An error reported by a source schema, with its path relative to a value."""

    error: GraphQLError
    path: Tuple[PathSegment, ...] = ()

    @classmethod
    def from_error(cls, error: GraphQLError) -> PathedError:
        return cls(error, tuple(error.path or ()))

    def sliced(self) -> PathedError:
        return PathedError(self.error, self.path[1:])

    def prefixed(self, segment: PathSegment) -> PathedError:
        return PathedError(self.error, (segment, *self.path))

    def shifted(self, offset: int) -> PathedError:
        if not self.path or not isinstance(self.path[0], int):
            return self
        return PathedError(self.error, (self.path[0] + offset, *self.path[1:]))


class StitchedResult(dict):
    """A delegated object carrying the errors reported for its descendants."""

    def __init__(self, value: Mapping[str, Any], errors: Iterable[PathedError] = ()):
        super().__init__(value)
        self.errors: tuple[PathedError, ...] = tuple(errors)


def child_errors(errors: Iterable[PathedError], key: PathSegment) -> list[PathedError]:
    return [error.sliced() for error in errors if error.path[:1] == (key,)]


def get_errors(value: Any) -> tuple[PathedError, ...]:
    if isinstance(value, StitchedResult):
        return value.errors
    return ()


def relocate_error(errors: Sequence[PathedError]) -> GraphQLError:
    """Build an error without the source path.

    graphql-core keeps the path of errors that already have one, so the
    source errors are re-created for the outer executor to locate them.
    """
    if len(errors) == 1:
        error = errors[0].error
        return GraphQLError(
            error.message,
            original_error=error.original_error,
            extensions=error.extensions,
        )

    return GraphQLError("\n".join(error.error.message for error in errors))


def annotate_errors(value: Any, errors: Sequence[PathedError]) -> Any:
    if not errors:
        return value

    if isinstance(value, Mapping):
        return StitchedResult(value, (*get_errors(value), *errors))

    if isinstance(value, list):
        by_index: dict[int, list[PathedError]] = defaultdict(list)
        for error in errors:
            index = error.path[0]
            if isinstance(index, int):
                by_index[index].append(error.sliced())

        items = []
        for index, item in enumerate(value):
            item_errors = by_index.get(index, [])
            own = [error for error in item_errors if not error.path]
            if own or (item is None and item_errors):
                # graphql-core raises exceptions found in lists at their index
                items.append(relocate_error(own or item_errors))
            else:
                items.append(annotate_errors(item, item_errors))
        return items

    return value


def resolve_value(value: Any, errors: Sequence[PathedError]) -> Any:
    """Raise the errors of the value itself, attach the others to it."""
    own = [error for error in errors if not error.path]
    if own:
        raise relocate_error(own)
    if value is None and errors:
        # Nulled by a failing descendant, which can't be located anymore
        raise relocate_error(errors)

    return annotate_errors(value, errors)


def _merge(
    left: Any,
    left_errors: list[PathedError],
    right: Any,
    right_errors: list[PathedError],
) -> tuple[Any, list[PathedError]]:
    if right is None:
        return left, left_errors
    if left is None:
        return right, right_errors

    if isinstance(left, list) and isinstance(right, list):
        offset = len(left)
        return [*left, *right], [
            *left_errors,
            *(error.shifted(offset) for error in right_errors),
        ]

    if isinstance(left, Mapping) and isinstance(right, Mapping):
        shared = left.keys() & right.keys()
        new = {**left, **right}
        errors = [
            error
            for error in (*left_errors, *right_errors)
            if error.path[:1] and error.path[0] not in shared
        ]

        for key in shared:
            new[key], key_errors = _merge(
                left[key],
                child_errors(left_errors, key),
                right[key],
                child_errors(right_errors, key),
            )
            errors.extend(error.prefixed(key) for error in key_errors)

        return new, errors

    return right, right_errors


def merge_results(
    results: Sequence[tuple[Any, Sequence[PathedError]]],
) -> tuple[Any, list[PathedError]]:
    """Deep merge results of the same field fetched from several schemas.

    Lists are concatenated and mappings merged key by key, later results
    overriding earlier ones. `None` never overrides a value. Error paths
    follow the values they point at.
    """
    value: Any = None
    errors: list[PathedError] = []
    for result_value, result_errors in results:
        value, errors = _merge(value, errors, result_value, list(result_errors))
    return value, errors
