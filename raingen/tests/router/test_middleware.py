"""Tests for request contexts and the middleware registry."""

import pytest
from flask import Flask, jsonify

from raingen import router


@pytest.fixture
def app():
    return Flask(__name__)


def view(**params):
    ctx = router.context()
    return jsonify(values=ctx.values, params=params)


def describe_context():
    def is_shared_within_a_request(expect, app):
        with app.test_request_context("/x"):
            router.set_value("user", "ada")
            expect(router.context().get("user")) == "ada"
            expect(router.context().request.path) == "/x"

    def starts_empty_for_each_request(expect, app):
        with app.test_request_context():
            router.set_value("user", "ada")
        with app.test_request_context():
            expect(router.context().values) == {}

    def copies_are_detached(expect, app):
        with app.test_request_context():
            ctx = router.context()
            ctx.values["a"] = 1
            copy = ctx.copy()
            copy.values["b"] = 2
            copy.response.set_data(b"changed")
            expect(ctx.values) == {"a": 1}
            expect(copy.get("a")) == 1
            expect(copy.request is ctx.request) == True
            expect(ctx.response.get_data()) == b""


def describe_resolve_middlewares():
    def returns_the_chain_in_order(expect):
        first, second = (lambda ctx: None), (lambda ctx: None)
        router.register_middleware("test-resolve-first", first)
        router.register_middleware("test-resolve-second", second)
        resolved = router.resolve_middlewares(["test-resolve-second", "test-resolve-first"])
        expect(resolved) == router.Resolved((second, first))

    def reports_the_first_unknown_name(expect):
        router.register_middleware("test-resolve-known", lambda ctx: None)
        resolved = router.resolve_middlewares(
            ["test-resolve-known", "test-resolve-unknown", "test-resolve-other"]
        )
        expect(resolved) == router.Missing("test-resolve-unknown")

    def works_as_a_decorator(expect):
        @router.register_middleware("test-resolve-decorated")
        def decorated(ctx):
            return None

        expect(router.resolve_middlewares(["test-resolve-decorated"])) == router.Resolved(
            (decorated,)
        )


def describe_handle():
    def runs_middleware_before_the_view(expect, app):
        router.register_middleware("test-handle-user", lambda ctx: ctx.values.update(user="ada"))
        router.handle(app, "GET", "/items/<name>", "items", ["test-handle-user"], view)
        resp = app.test_client().get("/items/lamp")
        expect(resp.get_json()) == {"values": {"user": "ada"}, "params": {"name": "lamp"}}

    def stops_at_a_middleware_response(expect, app):
        calls = []
        router.register_middleware(
            "test-handle-deny", lambda ctx: router.error(401, "unauthorized")
        )
        router.register_middleware("test-handle-after", lambda ctx: calls.append(ctx))
        router.handle(app, "POST", "/deny", "deny", ["test-handle-deny", "test-handle-after"], view)
        resp = app.test_client().post("/deny")
        expect(resp.get_json()) == {"code": 401, "msg": "unauthorized", "data": None}
        expect(calls) == []

    def answers_with_an_error_when_middleware_is_missing(expect, app):
        router.handle(app, "POST", "/missing", "missing", ["test-handle-absent"], view)
        resp = app.test_client().post("/missing")
        expect(resp.status_code) == 200
        expect(resp.get_json()) == {
            "code": 500,
            "msg": "middleware: test-handle-absent not found",
            "data": None,
        }

    def uses_the_given_error_code(expect, app):
        router.handle(app, "GET", "/m", "m", ["test-handle-absent"], view, error_code=42)
        expect(app.test_client().get("/m").get_json()["code"]) == 42

    def resolves_middleware_at_registration(expect, app):
        router.handle(app, "GET", "/late", "late", ["test-handle-late"], view)
        router.register_middleware("test-handle-late", lambda ctx: None)
        expect(app.test_client().get("/late").get_json()["code"]) == 500
