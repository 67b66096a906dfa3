from __future__ import annotations
import dataclasses
import enum
import inspect
import json
import types
from typing import Any, Union, get_args, get_origin, get_type_hints


class CodecError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


def _is_any(tp) -> bool:
    return tp is Any or tp is object or tp is inspect.Parameter.empty or isinstance(tp, str)


def _type_name(tp) -> str:
    return getattr(tp, "__name__", None) or str(tp)


def _default(obj):
    if isinstance(obj, enum.Enum):
        return obj.value
    if hasattr(obj, "to_json") and callable(obj.to_json):
        return obj.to_json()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_value(value: Any) -> str:
    try:
        return json.dumps(value, default=_default)
    except (TypeError, ValueError) as e:
        raise CodecError(str(e)) from e


def decode_value(text: str, tp: Any = Any) -> Any:
    """
    Parse JSON text and convert the result to the hinted type `tp`.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise CodecError(f"invalid JSON: {e}") from e
    return convert(data, tp)


def _convert_dataclass(data, tp):
    if not isinstance(data, dict):
        raise CodecError(f"expected object for {tp.__name__}, got {type(data).__name__}")
    try:
        hints = get_type_hints(tp)
    except (NameError, TypeError):
        hints = {}
    kwargs = {}
    for f in dataclasses.fields(tp):
        if not f.init or f.name not in data:
            continue
        kwargs[f.name] = convert(data[f.name], hints.get(f.name, Any))
    try:
        return tp(**kwargs)
    except Exception as e:
        raise CodecError(f"cannot build {tp.__name__}: {e}") from e


def convert(data: Any, tp: Any) -> Any:
    """Convert a parsed JSON value to `tp`, raising CodecError on mismatch."""
    if _is_any(tp):
        return data
    if tp is None or tp is type(None):
        if data is not None:
            raise CodecError(f"expected null, got {type(data).__name__}")
        return None

    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Union or origin is types.UnionType:
        if data is None and type(None) in args:
            return None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return convert(data, arg)
            except CodecError:
                continue
        raise CodecError(f"value does not match {tp}")

    if origin in (list, tuple, set, frozenset):
        if not isinstance(data, list):
            raise CodecError(f"expected array for {tp}, got {type(data).__name__}")
        if origin is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
            if args == ((),):
                args = ()
            if len(args) != len(data):
                raise CodecError(f"expected {len(args)} items for {tp}, got {len(data)}")
            return tuple(convert(x, a) for x, a in zip(data, args))
        item_tp = args[0] if args else Any
        return origin(convert(x, item_tp) for x in data)

    if origin is dict:
        if not isinstance(data, dict):
            raise CodecError(f"expected object for {tp}, got {type(data).__name__}")
        key_tp, val_tp = args if args else (Any, Any)
        out = {}
        for k, v in data.items():
            if key_tp is int:
                try:
                    k = int(k)
                except ValueError as e:
                    raise CodecError(f"invalid integer key {k!r}") from e
            out[k] = convert(v, val_tp)
        return out

    if origin is not None:
        # Other parameterized generics: check against the bare origin.
        return convert(data, origin)

    if not isinstance(tp, type):
        return data

    if hasattr(tp, "from_json") and callable(tp.from_json):
        try:
            return tp.from_json(data)
        except Exception as e:
            raise CodecError(f"cannot build {tp.__name__}: {e}") from e
    if issubclass(tp, enum.Enum):
        try:
            return tp(data)
        except (TypeError, ValueError) as e:
            raise CodecError(f"invalid {tp.__name__} value {data!r}") from e
    if dataclasses.is_dataclass(tp):
        return _convert_dataclass(data, tp)
    if tp is bool:
        if not isinstance(data, bool):
            raise CodecError(f"expected bool, got {type(data).__name__}")
        return data
    if tp is int:
        if isinstance(data, bool) or not isinstance(data, int):
            raise CodecError(f"expected int, got {type(data).__name__}")
        return data
    if tp is float:
        if isinstance(data, bool) or not isinstance(data, (int, float)):
            raise CodecError(f"expected float, got {type(data).__name__}")
        return float(data)
    if tp in (tuple, set, frozenset):
        if not isinstance(data, list):
            raise CodecError(f"expected array, got {type(data).__name__}")
        return tp(data)
    if isinstance(data, tp):
        return data
    raise CodecError(f"expected {_type_name(tp)}, got {type(data).__name__}")


_ZEROS = {int: 0, float: 0.0, str: "", bool: False, bytes: b""}


def zero_value(tp: Any) -> Any:
    """
    Default value used in place of an argument that could not be decoded.
    """
    if _is_any(tp) or tp is None or tp is type(None):
        return None
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return None
    if origin is not None:
        tp = origin
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return next(iter(tp), None)
    if tp in _ZEROS:
        return _ZEROS[tp]
    if tp in (list, dict, tuple, set, frozenset):
        return tp()
    if isinstance(tp, type) and dataclasses.is_dataclass(tp):
        try:
            return tp()
        except Exception:
            return None
    return None
