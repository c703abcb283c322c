"""Tests for the JSON envelope."""

from dataclasses import dataclass

import pytest
from flask import Flask

from raingen import router


@dataclass
class Greeting(router.Model):
    text: str = router.field("text", default="")


@pytest.fixture
def app():
    return Flask(__name__)


def describe_json():
    def wraps_models(expect, app):
        with app.app_context():
            resp = router.json(Greeting(text="hello"))
        expect(resp.status_code) == 200
        expect(resp.get_json()) == {"code": 0, "msg": "", "data": {"text": "hello"}}

    def wraps_plain_data(expect, app):
        with app.app_context():
            resp = router.json([1, 2])
        expect(resp.get_json()) == {"code": 0, "msg": "", "data": [1, 2]}


def describe_error():
    def carries_the_code_and_message(expect, app):
        with app.app_context():
            resp = router.error(503, ValueError("busy"))
        expect(resp.status_code) == 200
        expect(resp.get_json()) == {"code": 503, "msg": "busy", "data": None}

    def accepts_strings(expect, app):
        with app.app_context():
            resp = router.error(400, "bad input")
        expect(resp.get_json()["msg"]) == "bad input"
