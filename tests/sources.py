"""Source schemas shared by the stitching tests."""

import datetime
from typing import List, Optional

import strawberry

EPOCH = datetime.date(1970, 1, 1)

FOO_NAMES = {"foo": "Name"}


# The "foo" schema, owning Foo.name and Foo.a


@strawberry.interface
class FooB:
    a: str


@strawberry.type
class Foo(FooB):
    id: strawberry.ID
    name: str


@strawberry.input
class UpdateFooInput:
    id: strawberry.ID
    name: str


def get_foo(id: str) -> Optional[Foo]:  # noqa: A002
    if id not in FOO_NAMES:
        return None
    return Foo(id=strawberry.ID(id), name=FOO_NAMES[id], a="A")


@strawberry.type(name="Query")
class FooQuery:
    @strawberry.field
    def foo(self, id: strawberry.ID) -> Optional[Foo]:  # noqa: A002
        return get_foo(id)

    @strawberry.field
    def foos(self) -> List[Foo]:
        return [Foo(id=strawberry.ID(i), name=n, a="A") for i, n in FOO_NAMES.items()]


@strawberry.type(name="Mutation")
class FooMutation:
    @strawberry.mutation
    def update_foo(self, input: UpdateFooInput) -> Optional[Foo]:  # noqa: A002
        FOO_NAMES[input.id] = input.name
        return get_foo(input.id)


foo_schema = strawberry.Schema(query=FooQuery, mutation=FooMutation)


# The "bar" schema, owning Bar and Foo.bars


@strawberry.type
class Bar:
    id: strawberry.ID
    date: datetime.date

    @strawberry.field
    def foo(self) -> "BarSchemaFoo":
        return BarSchemaFoo(id=strawberry.ID("foo"))


@strawberry.interface
class FooA:
    @strawberry.field
    def bars(self) -> List[Bar]:
        return [Bar(id=strawberry.ID("bar"), date=EPOCH)]


@strawberry.type(name="Foo")
class BarSchemaFoo(FooA):
    id: strawberry.ID


@strawberry.type(name="Query")
class BarQuery:
    @strawberry.field
    def bar(
        self,
        id: strawberry.ID,  # noqa: A002
        date: Optional[datetime.date] = None,
    ) -> Bar:
        return Bar(id=id, date=date or EPOCH)

    @strawberry.field
    def foo(self, id: strawberry.ID) -> BarSchemaFoo:  # noqa: A002
        return BarSchemaFoo(id=id)


bar_schema = strawberry.Schema(query=BarQuery)


# SDL sources, executed with graphql-core

ACCOUNTS_SDL = """
type User {
  id: ID!
  name: String!
  email: String
}

type Query {
  user(id: ID!): User
  users: [User]
}
"""

REVIEWS_SDL = """
type User {
  id: ID!
  reviews: [Review!]!
}

type Review {
  id: ID!
  body: String!
  author: User
}

type Query {
  reviews: [Review!]!
  user(id: ID!): User
}
"""

USERS = {
    "alice": {"id": "alice", "name": "Alice", "email": "alice@example.com"},
    "bob": {"id": "bob", "name": "Bob", "email": "bob@example.com"},
}

REVIEWS = [
    {"id": "r1", "body": "Great", "author": {"id": "alice"}},
    {"id": "r2", "body": "Meh", "author": {"id": "bob"}},
]
