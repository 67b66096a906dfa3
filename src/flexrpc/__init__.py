from .protocol import (
    DEFAULT_PATH,
    Code,
    Envelope,
    ProtocolError,
)
from .codec import CodecError
from .config import ConfigError, RpcConfig
from .rpc_registry import MethodDescriptor, RpcRegistry
from .server import Dispatcher, RpcServer, create_app, register, register_path
from .client import (
    Client,
    ClientError,
    DecodeError,
    EncodeError,
    RpcError,
    Slot,
    TransportError,
)

__all__ = [
    "DEFAULT_PATH",
    "Code",
    "Envelope",
    "ProtocolError",
    "CodecError",
    "ConfigError",
    "RpcConfig",
    "MethodDescriptor",
    "RpcRegistry",
    "Dispatcher",
    "RpcServer",
    "create_app",
    "register",
    "register_path",
    "Client",
    "ClientError",
    "DecodeError",
    "EncodeError",
    "RpcError",
    "Slot",
    "TransportError",
]
