from collections import Counter

import pytest
from graphql import graphql

from strawberry_stitching import merge_schemas

from . import sources
from .utils import document, documents_of, recording_subschema

pytestmark = pytest.mark.asyncio


async def test_query_across_schemas(counter):
    merged = merge_schemas(
        [sources.foo_schema, sources.bar_schema],
        observers=[counter],
    )

    result = await graphql(
        merged,
        """
        query {
          bar(id: "bar", date: "1970-01-01") {
            id
            date
            foo {
              id
              name
              bars {
                id
              }
              a
            }
          }
          foos {
            id
          }
        }
        """,
    )

    assert not result.errors
    assert result.data == {
        "bar": {
            "id": "bar",
            "date": "1970-01-01",
            "foo": {
                "id": "foo",
                "name": "Name",
                "bars": [{"id": "bar"}],
                "a": "A",
            },
        },
        "foos": [{"id": "foo"}],
    }
    assert counter.calls == Counter({"schema0": 3, "schema1": 1})
    assert counter.entry_points == Counter({("schema0", "foo"): 2})


async def test_backfill_from_the_owning_schema(accounts, reviews, counter):
    merged = merge_schemas([accounts, reviews], observers=[counter])

    result = await graphql(merged, "{ reviews { body author { name } } }")

    assert not result.errors
    assert result.data == {
        "reviews": [
            {"body": "Great", "author": {"name": "Alice"}},
            {"body": "Meh", "author": {"name": "Bob"}},
        ],
    }
    assert documents_of(reviews) == [
        document("{ reviews { body author { id } id } }"),
    ]
    assert sorted(documents_of(accounts)) == [
        document('{ user(id: "alice") { name } }'),
        document('{ user(id: "bob") { name } }'),
    ]
    assert counter.calls == Counter({"reviews": 1, "accounts": 2})
    assert counter.entry_points == Counter({("accounts", "user"): 2})


async def test_backfill_nested_object_fields(accounts, reviews):
    merged = merge_schemas([accounts, reviews])

    result = await graphql(
        merged,
        '{ user(id: "alice") { name reviews { body } } }',
    )

    assert not result.errors
    assert result.data == {
        "user": {"name": "Alice", "reviews": [{"body": "Great"}]},
    }
    assert documents_of(accounts) == [
        document('{ user(id: "alice") { name id } }'),
    ]
    assert documents_of(reviews) == [
        document('{ user(id: "alice") { reviews { body id } } }'),
    ]


async def test_aliases(accounts, reviews):
    merged = merge_schemas([accounts, reviews])

    result = await graphql(
        merged,
        """
        {
          me: user(id: "alice") {
            fullName: name
            posts: reviews { text: body }
          }
        }
        """,
    )

    assert not result.errors
    assert result.data == {
        "me": {"fullName": "Alice", "posts": [{"text": "Great"}]},
    }
    assert documents_of(reviews) == [
        document('{ user(id: "alice") { posts: reviews { text: body id } } }'),
    ]


async def test_variables_are_inlined(accounts, reviews):
    merged = merge_schemas([accounts, reviews])

    result = await graphql(
        merged,
        "query GetUser($id: ID!) { user(id: $id) { name reviews { body } } }",
        variable_values={"id": "bob"},
    )

    assert not result.errors
    assert result.data == {"user": {"name": "Bob", "reviews": [{"body": "Meh"}]}}
    assert documents_of(accounts) == [
        document('{ user(id: "bob") { name id } }'),
    ]


async def test_unset_optional_variables_are_dropped():
    source = recording_subschema(
        "type Query { hello(name: String = \"World\"): String }",
        {"Query": {"hello": lambda _root, _info, name: f"Hello {name}"}},
        name="hello",
    )
    merged = merge_schemas([source])

    result = await graphql(merged, "query ($name: String) { hello(name: $name) }")

    assert not result.errors
    assert result.data == {"hello": "Hello World"}
    assert documents_of(source) == [document("{ hello }")]


async def test_fragments_are_inlined(accounts, reviews):
    merged = merge_schemas([accounts, reviews])

    result = await graphql(
        merged,
        """
        query {
          users { ...UserFields }
        }

        fragment UserFields on User {
          name
          reviews { body }
        }
        """,
    )

    assert not result.errors
    assert result.data == {
        "users": [
            {"name": "Alice", "reviews": [{"body": "Great"}]},
            {"name": "Bob", "reviews": [{"body": "Meh"}]},
        ],
    }
    assert documents_of(accounts) == [
        document("{ users { ... on User { name } id } }"),
    ]


async def test_present_falsy_values_are_not_fetched_again(counter):
    item_defs = "type Item { id: ID! count: Int label: String }"
    first = recording_subschema(
        item_defs + " type Query { item(id: ID!): Item }",
        {"Query": {"item": lambda *_, **__: {"id": "x", "count": 5, "label": "x"}}},
        name="first",
    )
    second = recording_subschema(
        item_defs + " type Query { items: [Item] }",
        {"Query": {"items": lambda *_: [{"id": "x", "count": 0, "label": None}]}},
        name="second",
    )
    merged = merge_schemas([first, second], observers=[counter])

    result = await graphql(merged, "{ items { count label } }")

    assert not result.errors
    assert result.data == {"items": [{"count": 0, "label": None}]}
    assert counter.calls == Counter({"second": 1})
    assert documents_of(first) == []


async def test_abstract_types():
    source = recording_subschema(
        """
        type Photo { id: ID! url: String! }
        type Post { id: ID! title: String! }
        union Media = Photo | Post
        type Query { media: [Media!]! }
        """,
        {
            "Query": {
                "media": lambda *_: [
                    {"__typename": "Photo", "id": "p1", "url": "/p1.png"},
                    {"__typename": "Post", "id": "t1", "title": "Title"},
                ],
            },
        },
        name="media",
    )
    merged = merge_schemas([source])

    result = await graphql(
        merged,
        """
        query {
          media {
            __typename
            ...PhotoFields
            ... on Post { title }
          }
        }

        fragment PhotoFields on Photo {
          url
        }
        """,
    )

    assert not result.errors
    assert result.data == {
        "media": [
            {"__typename": "Photo", "url": "/p1.png"},
            {"__typename": "Post", "title": "Title"},
        ],
    }
    assert documents_of(source) == [
        document(
            "{ media { __typename ... on Photo { url } ... on Post { title } } }",
        ),
    ]


async def test_enum_and_custom_scalar_values_pass_through():
    source = recording_subschema(
        """
        scalar JSON
        enum Status { OPEN CLOSED }
        type Ticket { id: ID! status: Status! meta: JSON }
        type Query { tickets(status: Status): [Ticket!]! }
        """,
        {
            "Query": {
                "tickets": lambda _root, _info, status=None: [
                    {"id": "t1", "status": "OPEN", "meta": {"tags": ["a"]}},
                    {"id": "t2", "status": "CLOSED", "meta": None},
                ],
            },
        },
        name="tickets",
    )
    merged = merge_schemas([source])

    result = await graphql(
        merged,
        "query ($status: Status) { tickets(status: $status) { status meta } }",
        variable_values={"status": "OPEN"},
    )

    assert not result.errors
    assert result.data == {
        "tickets": [
            {"status": "OPEN", "meta": {"tags": ["a"]}},
            {"status": "CLOSED", "meta": None},
        ],
    }
    assert documents_of(source) == [
        document("{ tickets(status: OPEN) { status meta id } }"),
    ]


@pytest.mark.parametrize(
    ("variables", "expected", "sent"),
    [
        ({}, "[None]", "{ hello(names: [null]) }"),
        ({"n": "x"}, "['x']", '{ hello(names: ["x"]) }'),
    ],
)
async def test_variables_nested_in_lists(variables, expected, sent):
    source = recording_subschema(
        "type Query { hello(names: [String]): String }",
        {"Query": {"hello": lambda _root, _info, names: str(names)}},
        name="hello",
    )
    merged = merge_schemas([source])

    result = await graphql(
        merged,
        "query ($n: String) { hello(names: [$n]) }",
        variable_values=variables,
    )

    assert not result.errors
    assert result.data == {"hello": expected}
    assert documents_of(source) == [document(sent)]


async def test_custom_scalar_object_variables():
    source = recording_subschema(
        """
        scalar JSON
        type Query { echo(value: JSON): JSON }
        """,
        {"Query": {"echo": lambda _root, _info, value: value}},
        name="echo",
    )
    merged = merge_schemas([source])

    result = await graphql(
        merged,
        "query ($v: JSON) { echo(value: $v) }",
        variable_values={"v": {"a": 1, "b": [True, None]}},
    )

    assert not result.errors
    assert result.data == {"echo": {"a": 1, "b": [True, None]}}
    assert documents_of(source) == [
        document("{ echo(value: {a: 1, b: [true, null]}) }"),
    ]
