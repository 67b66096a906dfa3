from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Sequence, Tuple
import json

from werkzeug.datastructures import MultiDict

DEFAULT_PATH = "/_http_rpc"

METHOD_FIELD = "method"
IN_FIELD = "in"


class Code(IntEnum):
    OK = 0
    UNKNOWN_METHOD = 1
    PANIC = 2
    SERVER_ERROR = 3
    INVALID_ARGUMENT = 4


class ProtocolError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


@dataclass
class Envelope:
    """
    Response body of one call. Each entry of `outs` is itself JSON text.
    """
    code: Code
    info: str = ""
    outs: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, outs: Sequence[str]) -> Envelope:
        return cls(Code.OK, "", list(outs))

    @classmethod
    def unknown_method(cls, name: str) -> Envelope:
        return cls(Code.UNKNOWN_METHOD, name)

    @classmethod
    def panic(cls, info: str) -> Envelope:
        return cls(Code.PANIC, info)

    @classmethod
    def invalid_argument(cls, info: str) -> Envelope:
        return cls(Code.INVALID_ARGUMENT, info)

    def to_json(self) -> Dict[str, Any]:
        return {
            "Code": int(self.code),
            "Info": self.info,
            "Outs": list(self.outs),
        }

    @classmethod
    def from_json(cls, data: Any) -> Envelope:
        if not isinstance(data, dict):
            raise ProtocolError(f"envelope must be an object, got {type(data).__name__}")
        try:
            code = Code(data.get("Code", 0))
        except (ValueError, TypeError):
            raise ProtocolError(f"unknown code {data.get('Code')!r}")
        info = data.get("Info") or ""
        # Error envelopes from older servers carry `"Outs": null`.
        outs = data.get("Outs") or []
        if not isinstance(info, str) or not isinstance(outs, list):
            raise ProtocolError("malformed envelope")
        if not all(isinstance(out, str) for out in outs):
            raise ProtocolError("envelope outputs must be JSON strings")
        return cls(code, info, outs)

    def dumps(self) -> str:
        return json.dumps(self.to_json())

    @classmethod
    def loads(cls, raw: str | bytes) -> Envelope:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise ProtocolError(f"invalid envelope body: {e}") from e
        return cls.from_json(data)


def encode_request(method: str, ins: Sequence[str]) -> Dict[str, Any]:
    """Form fields for one call; `requests` repeats the `in` field per entry."""
    return {METHOD_FIELD: method, IN_FIELD: list(ins)}


def decode_request(values: MultiDict) -> Tuple[str, List[str]]:
    return values.get(METHOD_FIELD, ""), values.getlist(IN_FIELD)
