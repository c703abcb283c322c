"""The JSON envelope every generated route answers with."""

from dataclasses import dataclass
from typing import Any

from dataclasses_json import DataClassJsonMixin
from flask import Response as FlaskResponse
from flask import jsonify

from .model import Model


@dataclass
class Response(DataClassJsonMixin):
    code: int = 0
    msg: str = ""
    data: Any = None


def _payload(data: Any) -> Any:
    if isinstance(data, Model):
        return data.to_dict(encode_json=True)
    return data


def json(data: Any) -> FlaskResponse:
    """Success envelope ``{"code": 0, "msg": "", "data": data}``, HTTP 200."""
    resp = jsonify(Response(data=_payload(data)).to_dict(encode_json=True))
    resp.status_code = 200
    return resp


def error(code: int, err: BaseException | str) -> FlaskResponse:
    """Error envelope ``{"code": code, "msg": str(err), "data": null}``, HTTP 200."""
    resp = jsonify(Response(code=code, msg=str(err)).to_dict(encode_json=True))
    resp.status_code = 200
    return resp
