from __future__ import annotations
import logging
import time
from functools import wraps
from typing import Any, List, Optional, Sequence

from flask import Blueprint, Flask, Response, request

from .codec import CodecError, decode_value, encode_value, zero_value
from .config import RpcConfig
from .protocol import Envelope, decode_request
from .rpc_registry import MethodDescriptor, RpcRegistry

logger = logging.getLogger("dispatch")
profiling_logger = logging.getLogger("profiling")


def log_timing(name: str | None = None):
    def decorator(fn):
        fn_name = name or fn.__qualname__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                profiling_logger.info("%s took %.3f ms", fn_name, elapsed * 1000)
        return wrapper
    return decorator


class ArgumentError(Exception):
    def __init__(self, message):
        super().__init__(message)
        self.message = message


class Dispatcher:
    """
    Answers one call per `dispatch` using a read-only registry.

    Faults raised by the invoked method never escape `dispatch`: they are
    turned into a PANIC envelope. With `strict_args` off, arguments that
    fail to decode are replaced by their type's zero value.
    """

    def __init__(self, registry: RpcRegistry, strict_args: bool = False, log_tracebacks: bool = True):
        self.registry = registry
        self.strict_args = strict_args
        self.log_tracebacks = log_tracebacks

    @log_timing("dispatch")
    def dispatch(self, method: str, ins: Sequence[str], context: Any = None) -> Envelope:
        spec = self.registry.get(method)
        if spec is None:
            logger.warning("unknown method %r", method)
            return Envelope.unknown_method(method)

        try:
            args = self._assemble(spec, ins, context)
        except ArgumentError as e:
            logger.warning("rejected call to %s: %s", spec.name, e.message)
            return Envelope.invalid_argument(e.message)

        try:
            result = spec.fn(*args)
            outs = self._encode_outputs(spec, result)
        except Exception as e:
            info = str(e) or type(e).__name__
            logger.error("panic in %s: %s", spec.name, info, exc_info=e if self.log_tracebacks else None)
            return Envelope.panic(info)

        return Envelope.ok(outs)

    def _assemble(self, spec: MethodDescriptor, ins: Sequence[str], context: Any) -> List[Any]:
        if self.strict_args and len(ins) != spec.num_in:
            raise ArgumentError(f"{spec.name} expects {spec.num_in} inputs, got {len(ins)}")

        args: List[Any] = [context] if spec.needs_context else []
        for i, tp in enumerate(spec.in_types):
            try:
                if i >= len(ins):
                    raise CodecError("missing input")
                args.append(decode_value(ins[i], tp))
            except Exception as e:
                message = e.message if isinstance(e, CodecError) else f"{type(e).__name__}: {e}"
                if self.strict_args:
                    raise ArgumentError(f"in[{i}]: {message}") from e
                logger.warning("%s: in[%d] not decoded (%s), using zero value", spec.name, i, message)
                args.append(self._zero(tp))
        return args

    @staticmethod
    def _zero(tp: Any) -> Any:
        try:
            return zero_value(tp)
        except Exception:
            return None

    @staticmethod
    def _encode_outputs(spec: MethodDescriptor, result: Any) -> List[str]:
        if spec.num_out == 0:
            return []
        if spec.num_out == 1:
            return [encode_value(result)]
        return [encode_value(out) for out in result]


class RpcServer:
    """
    Flask view serving every public method of `service`.
    """

    def __init__(self, service: Any, config: Optional[RpcConfig] = None):
        self.config = config or RpcConfig()
        self.registry = RpcRegistry(service)
        self.dispatcher = Dispatcher(
            self.registry,
            strict_args=self.config.strict_args,
            log_tracebacks=self.config.log_tracebacks,
        )

    def __call__(self) -> Response:
        method, ins = decode_request(request.values)
        envelope = self.dispatcher.dispatch(method, ins, context=request._get_current_object())
        # The outcome travels in the body; the HTTP status is always 200.
        return Response(envelope.dumps(), status=200, mimetype="application/json")


def register_path(app: Flask | Blueprint, service: Any, path: str, config: Optional[RpcConfig] = None) -> RpcServer:
    """Serve `service` under `path` on the given app or blueprint."""
    server = RpcServer(service, config)
    app.add_url_rule(
        path,
        endpoint=f"flexrpc:{path}",
        view_func=server,
        methods=["GET", "POST"],
    )
    return server


def register(app: Flask | Blueprint, service: Any, config: Optional[RpcConfig] = None) -> RpcServer:
    config = config or RpcConfig()
    return register_path(app, service, config.path, config)


def _use_gunicorn_logger(app: Flask) -> None:
    gunicorn_error_logger = logging.getLogger("gunicorn.error")
    if gunicorn_error_logger.handlers:
        app.logger.handlers = gunicorn_error_logger.handlers
        app.logger.setLevel(gunicorn_error_logger.level)
        app.logger.propagate = False

        for name in ("werkzeug", logger.name, profiling_logger.name):
            logging.getLogger(name).handlers = gunicorn_error_logger.handlers
            logging.getLogger(name).setLevel(gunicorn_error_logger.level)


def create_app(service: Any, config: Optional[RpcConfig] = None) -> Flask:
    app = Flask(__name__)
    _use_gunicorn_logger(app)
    register(app, service, config)
    return app
