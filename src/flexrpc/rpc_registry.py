from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple, get_args, get_origin, get_type_hints
import inspect
import logging

from flask import Request

logger = logging.getLogger("dispatch")


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    fn: Callable[..., Any]  # bound to the service instance
    needs_context: bool
    in_types: Tuple[Any, ...]
    num_out: int

    @property
    def num_in(self) -> int:
        return len(self.in_types)


def _resolve_hints(fn) -> dict:
    try:
        return get_type_hints(fn)
    except Exception:
        # Unresolvable forward references: keep the raw annotations,
        # string annotations then decode as Any.
        return dict(getattr(fn, "__annotations__", {}) or {})


def count_outputs(hint: Any) -> int:
    """
    Number of declared outputs for a return annotation.

    `None` declares no output and a fixed-arity `tuple[...]` declares one
    output per item. Anything else, including no annotation, is one output.
    """
    if hint is None or hint is type(None):
        return 0
    if get_origin(hint) is tuple:
        args = get_args(hint)
        if args == ((),):
            return 0
        if args and not (len(args) == 2 and args[1] is Ellipsis):
            return len(args)
    return 1


def _is_context_type(hint: Any, context_type: type) -> bool:
    return isinstance(hint, type) and issubclass(hint, context_type)


def describe_method(name: str, fn: Callable[..., Any], context_type: type = Request) -> MethodDescriptor:
    hints = _resolve_hints(fn)
    try:
        params = list(inspect.signature(fn).parameters.values())
    except (TypeError, ValueError):
        params = []

    needs_context = bool(params) and _is_context_type(hints.get(params[0].name), context_type)
    if needs_context:
        params = params[1:]

    in_types = tuple(hints.get(p.name, Any) for p in params)
    num_out = count_outputs(hints.get("return", inspect.Signature.empty))
    return MethodDescriptor(
        name=name,
        fn=fn,
        needs_context=needs_context,
        in_types=in_types,
        num_out=num_out,
    )


class RpcRegistry:
    """
    Name -> MethodDescriptor map for every public method of a service
    instance. Built once and read-only afterwards.
    """

    def __init__(self, service: Any, context_type: type = Request):
        self.service = service
        self.context_type = context_type
        methods = {}
        for name, _ in inspect.getmembers(type(service), predicate=inspect.isroutine):
            if name.startswith("_"):
                continue
            methods[name] = describe_method(name, getattr(service, name), context_type)
        self._methods: Mapping[str, MethodDescriptor] = MappingProxyType(methods)
        logger.debug("registered %d methods of %s", len(methods), type(service).__name__)

    def get(self, name: str) -> Optional[MethodDescriptor]:
        return self._methods.get(name)

    def __getitem__(self, name: str) -> MethodDescriptor:
        return self._methods[name]

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    def __len__(self) -> int:
        return len(self._methods)

    def names(self) -> list[str]:
        return sorted(self._methods)

    @property
    def methods(self) -> Mapping[str, MethodDescriptor]:
        return self._methods
