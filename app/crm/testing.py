"""
Helpers for driving the GraphQL schema in-process from tests and scripts.

    with session_scope(app) as s:
        data = graphql_request(s, "mutation { customersAdd(input: {firstName: \"A\"}) { id } }", "customersAdd")
"""

from __future__ import annotations

import itertools
from typing import Any

from sqlalchemy.orm import Session

from app.crm.models import User
from app.crm.schema import schema

_seq = itertools.count(1)


class GraphQLRequestError(Exception):
    """The request failed before any resolver ran (parse or validation errors)."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors))


def user_factory(s: Session, **kw: Any) -> User:
    n = next(_seq)
    kw.setdefault("email", f"user{n}@example.com")
    kw.setdefault("full_name", f"User {n}")
    u = User(**kw)
    s.add(u)
    s.flush()
    return u


def graphql_request(
    s: Session,
    source: str,
    name: str,
    variables: dict[str, Any] | None = None,
    user: User | None = None,
    **context: Any,
) -> Any:
    """
    Execute `source` against the schema and return `data[name]`.

    A resolver exception is re-raised as-is so callers can assert on the
    domain error type. A fresh user is created when none is given.
    """
    if user is None:
        user = user_factory(s)
    ctx = {"session": s, "user": user, **context}
    result = schema.execute(source, variable_values=variables, context_value=ctx)
    if result.errors:
        original = result.errors[0].original_error
        if original is not None:
            raise original
        raise GraphQLRequestError(result.errors)
    return result.data[name]
