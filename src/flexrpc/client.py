from typing import Any, List, Optional, Sequence, Tuple
import logging

import requests

from .codec import CodecError, decode_value, encode_value
from .protocol import DEFAULT_PATH, Code, Envelope, ProtocolError, encode_request

logger = logging.getLogger("client")


class ClientError(Exception):
    def __init__(self, code: Optional[Code], message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class EncodeError(ClientError):
    """An input could not be encoded; nothing was sent."""
    def __init__(self, message: str):
        super().__init__(None, message)


class TransportError(ClientError):
    def __init__(self, message: str):
        super().__init__(None, message)


class DecodeError(ClientError):
    def __init__(self, message: str):
        super().__init__(None, message)


class RpcError(ClientError):
    """The call completed with a non-OK code."""
    def __init__(self, code: Code, info: str):
        super().__init__(code, f"{code.name}: {info}")
        self.info = info


class Slot:
    """
    Output destination for `Client.call_into`. `value` is only written when
    the matching output decodes.
    """
    def __init__(self, type: Any = Any, value: Any = None):
        self.type = type
        self.value = value

    def __repr__(self) -> str:
        return f"Slot(type={getattr(self.type, '__name__', self.type)}, value={self.value!r})"


class Client:
    """
    A client for one service served by `flexrpc.server`.

    Calls share one `requests.Session`, which is not documented as thread
    safe: give each thread its own `Client` (or its own `session`).
    """
    def __init__(self, host: str, path: str = DEFAULT_PATH, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.url = host.rstrip("/") + path
        self.session = session or requests.Session()
        self.timeout = timeout

    def _round_trip(self, method: str, ins: Sequence[Any]) -> List[str]:
        in_jsons = []
        for i, value in enumerate(ins):
            try:
                in_jsons.append(encode_value(value))
            except CodecError as e:
                raise EncodeError(f"in[{i}]: {e.message}") from e

        logger.debug("call %s with %d inputs", method, len(in_jsons))
        try:
            response = self.session.post(self.url, data=encode_request(method, in_jsons), timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise RpcError(Code.SERVER_ERROR, f"{response.status_code} {response.reason}".strip())

        try:
            envelope = Envelope.loads(response.content)
        except ProtocolError as e:
            raise DecodeError(e.message) from e

        if envelope.code != Code.OK:
            raise RpcError(envelope.code, envelope.info)
        return envelope.outs

    def call_into(self, num_in: int, method: str, *ins_and_slots: Any) -> None:
        """
        Make a call. The first `num_in` values are the inputs, the remaining
        positions are the `Slot`s receiving the outputs in order.
        """
        ins = ins_and_slots[:num_in]
        slots = ins_and_slots[num_in:]
        outs = self._round_trip(method, ins)
        for i, out in enumerate(outs):
            slot = slots[i]
            try:
                slot.value = decode_value(out, slot.type)
            except CodecError as e:
                raise DecodeError(f"out[{i}]: {e.message}") from e

    def call(self, method: str, *ins: Any, returns: Optional[Sequence[Any]] = None) -> Tuple[Any, ...]:
        """
        Make a call and return the decoded outputs as a tuple, converted to
        the types in `returns` when given.
        """
        outs = self._round_trip(method, ins)
        types = list(returns or [])
        # Outputs beyond `returns` decode as raw JSON values.
        types += [Any] * (len(outs) - len(types))
        decoded = []
        for i, out in enumerate(outs):
            try:
                decoded.append(decode_value(out, types[i]))
            except CodecError as e:
                raise DecodeError(f"out[{i}]: {e.message}") from e
        return tuple(decoded)
