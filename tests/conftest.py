import pytest

from strawberry_stitching import DelegationCounter

from . import sources
from .utils import by_id, recording_subschema


@pytest.fixture(autouse=True)
def _reset_foo_names():
    names = dict(sources.FOO_NAMES)
    yield
    sources.FOO_NAMES.clear()
    sources.FOO_NAMES.update(names)


@pytest.fixture
def counter():
    return DelegationCounter()


@pytest.fixture
def accounts():
    return recording_subschema(
        sources.ACCOUNTS_SDL,
        {
            "Query": {
                "user": by_id(sources.USERS),
                "users": lambda *_: list(sources.USERS.values()),
            },
        },
        name="accounts",
    )


@pytest.fixture
def reviews():
    def user(_root, _info, id):  # noqa: A002
        if id not in sources.USERS:
            return None
        return {
            "id": id,
            "reviews": [r for r in sources.REVIEWS if r["author"]["id"] == id],
        }

    return recording_subschema(
        sources.REVIEWS_SDL,
        {
            "Query": {
                "reviews": lambda *_: sources.REVIEWS,
                "user": user,
            },
        },
        name="reviews",
    )
