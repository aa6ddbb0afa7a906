"""
RPC client and server for Python classes based on ZeroMQ and MessagePack.

hdfsfs talks to a remote store through a handful of calls like list_resources(),
open_read() and mkdirs(). Rather than describing these in an interface definition
language, a service is just a Python class: every method of the class is exposed to
clients, and dataclasses used in its type annotations are serialized automatically.

* Multithreading is supported on both ends
    * The server distributes calls over multiple worker threads.
    * The client keeps a socket per thread.
* Builtin exceptions are transported and recreated faithfully
    * A FileNotFoundError raised by the service is raised as such by the client.
    * Other exceptions are recreated as a generic Exception with the same arguments.
* Calls can be authenticated with a shared token

The same Encoding class is used to store dataclasses as JSON on disk.
"""

from abc import ABC
import builtins
from dataclasses import is_dataclass
from enum import auto, Enum
import json
import logging
import threading
import time
import typing
from typing import Any, Callable, Dict, IO, List, NoReturn, Optional, Tuple

import msgpack
import zmq

from hdfsfs.logger import log, summarize


class Encoding:
    """Serialization of dataclasses and exceptions using MessagePack or JSON."""

    def __init__(self, *dataclasses: type):
        """Initialize a (de)serializer with support for the given dataclass types."""
        self._dataclasses: Dict[str, type] = {}

        for dataclass in dataclasses:
            self.register_dataclasses(dataclass)

    def register_dataclasses(self, seed_type: type) -> None:
        """Register a dataclass type along with all dataclasses nested within it."""
        for dataclass in self._discover_dataclasses(seed_type):
            self._dataclasses[dataclass.__qualname__] = dataclass

    def pack(self, obj: Any) -> bytes:
        """Serialize an object using MessagePack."""
        return msgpack.packb(obj, default=self.serialize_obj)

    def unpack(self, data: bytes) -> Any:
        """Deserialize an object using MessagePack."""
        return msgpack.unpackb(data, object_hook=self.deserialize_obj)

    def dump_json(self, obj: Any, fp: IO[str]) -> None:
        """Serialize an object to JSON."""
        json.dump(obj, fp, default=self.serialize_obj)

    def load_json(self, fp: IO[str]) -> Any:
        """Deserialize an object from JSON."""
        return json.load(fp, object_hook=self.deserialize_obj)

    def serialize_obj(self, obj: Any) -> Any:
        """Turn a dataclass or exception into a serialization friendly dict."""
        if isinstance(obj, BaseException):
            return {
                "__exception__": {"name": obj.__class__.__qualname__, "args": obj.args}
            }
        elif obj.__class__.__qualname__ in self._dataclasses:
            return {
                "__data__": {"type": obj.__class__.__qualname__, "data": obj.__dict__}
            }
        else:
            raise ValueError(f"unserializable object {obj}")

    def deserialize_obj(self, obj: Any) -> Any:
        """Reconstruct a dataclass or exception from a serialized representation."""
        if isinstance(obj, dict) and "__exception__" in obj:
            return self._deserialize_exception(obj["__exception__"])
        elif isinstance(obj, dict) and "__data__" in obj:
            return self._deserialize_dataclass(obj["__data__"])
        else:
            return obj

    @staticmethod
    def _deserialize_exception(obj: Dict) -> BaseException:
        """Recreate a builtin exception, or a generic Exception for any other type."""
        builtin_exc = getattr(builtins, obj["name"], None)

        if isinstance(builtin_exc, type) and issubclass(builtin_exc, BaseException):
            return builtin_exc(*obj["args"])
        else:
            return Exception(*obj["args"])

    def _deserialize_dataclass(self, obj: Dict) -> Any:
        """Recreate a dataclass instance of a previously registered type."""
        type_name = obj["type"]

        if type_name not in self._dataclasses:
            raise TypeError(f"unknown dataclass '{type_name}'")

        try:
            return self._dataclasses[type_name](**obj["data"])
        except Exception as e:
            raise TypeError(f"failed to deserialize {type_name}: {e}")

    @staticmethod
    def _discover_dataclasses(*seed_types: type) -> List[type]:
        """
        Find all dataclass types used within the specified types.

        This includes the types themselves, the types of their fields, and types nested
        in containers like List[T] and Optional[T].
        """
        candidates = set(seed_types)
        explored = set()
        dataclasses = set()

        while candidates:
            candidate = candidates.pop()

            if candidate in explored:
                continue

            explored.add(candidate)

            if is_dataclass(candidate):
                dataclasses.add(candidate)
                candidates.update(typing.get_type_hints(candidate).values())
            else:
                candidates.update(typing.get_args(candidate))

        return list(dataclasses)


class ReturnType(Enum):
    """Type of result for an RPC call."""

    NORMAL = auto()
    EXCEPTION = auto()
    TOKEN_ERROR = auto()


class InvalidTokenError(RuntimeError):
    """Exception raised when an RPC call is made with a wrong authentication token."""


class Base(ABC):
    """Shared logic between RPC client and server implementation."""

    def __init__(self, service_type: type):
        """Initialize RPC (de)serialization to support the specified service class."""
        self._encoding = Encoding(*self._discover_function_types(service_type))

    @staticmethod
    def _discover_function_types(service_type: type) -> List[type]:
        """Discover all types used as parameters or return values in the service."""
        function_types: List[type] = []

        for name in dir(service_type):
            func = getattr(service_type, name)

            if callable(func) and not name.startswith("_"):
                function_types += typing.get_type_hints(func).values()

        return function_types


class Server(Base):
    """
    RPC server that exposes the methods of a class instance.

    Example:
    ```
    class Foo:
        def bar(self, a, b):
            return a + b

    server = rpc.Server(Foo())
    server.serve("tcp://0.0.0.0:1234")
    ```
    """

    def __init__(
        self, service: Any, token: Optional[str] = None, worker_count: int = 1
    ):
        """
        Instantiate an RPC server for the given service class instance.

        If a token is specified then clients will need to be initialized with that same
        token to be allowed to make calls. Incoming calls are distributed across the
        specified number of worker threads.
        """
        super().__init__(service.__class__)

        self.context = zmq.Context()

        self.service = service
        self.token = token
        self.worker_count = worker_count

        self._socket: Optional[zmq.Socket] = None
        self._workers_socket: Optional[zmq.Socket] = None

    def bind(self, endpoint: str) -> str:
        """
        Bind to the specified endpoint and start the worker threads.

        The endpoint has the format of zmq_bind, for example "tcp://0.0.0.0:1234". A
        wildcard port ("tcp://127.0.0.1:*") may be used, so the actual endpoint that
        clients should connect to is returned.
        """
        self._socket = self.context.socket(zmq.ROUTER)
        self._socket.bind(endpoint)

        self._workers_socket = self.context.socket(zmq.DEALER)
        self._workers_socket.bind(f"inproc://{id(self)}")

        for _ in range(self.worker_count):
            t = threading.Thread(target=self._run_worker, daemon=True)
            t.start()

        return self._socket.getsockopt_string(zmq.LAST_ENDPOINT)

    def run(self) -> NoReturn:
        """Forward calls from clients to the workers until the process ends."""
        if self._socket is None or self._workers_socket is None:
            raise RuntimeError("server must be bound before it can run")

        zmq.proxy(self._socket, self._workers_socket)

        assert False, "unreachable"

    def serve(self, endpoint: str) -> NoReturn:
        """Bind to the specified endpoint and handle calls until the process ends."""
        log.info(f"serving {self.service.__class__.__name__} on {self.bind(endpoint)}")
        self.run()

    def _run_worker(self) -> NoReturn:
        """Request/response loop to handle calls for a single worker thread."""
        socket = self.context.socket(zmq.REP)
        socket.connect(f"inproc://{id(self)}")

        while True:
            token, function, *args = self._encoding.unpack(socket.recv())

            if token != self.token:
                socket.send(self._encoding.pack((ReturnType.TOKEN_ERROR.value, None)))
                continue

            # Invoke the method and return the response (value/raised exception)
            try:
                if function.startswith("_"):
                    raise AttributeError(f"'{function}' is not exposed")
                else:
                    ret = getattr(self.service, function)(*args)

                socket.send(self._encoding.pack((ReturnType.NORMAL.value, ret)))
            except Exception as e:
                socket.send(self._encoding.pack((ReturnType.EXCEPTION.value, e)))


class Client(Base):
    """
    RPC client to invoke methods on a service instance exposed by an RPC server.

    A single client can be used by multiple threads and will internally create a socket
    per thread.

    Example:
    ```
    foo = rpc.Client(Foo, "tcp://localhost:1234")
    c = foo.bar(1, 2)
    ```
    """

    def __init__(
        self,
        service_type: type,
        endpoint: str,
        token: Optional[str] = None,
        timeout_ms: int = -1,
    ) -> None:
        """
        Instantiate an RPC client for the service type at the given endpoint.

        The endpoint has the format of zmq_connect, for example "tcp://localhost:1234".
        """
        super().__init__(service_type)

        self.endpoint = endpoint
        self.token = token
        self.timeout_ms = timeout_ms

        self.context = zmq.Context()

        self._socket_pool: Dict[threading.Thread, zmq.Socket] = {}
        self._socket_pool_lock = threading.Lock()

    def _socket(self) -> zmq.Socket:
        """Return the socket to be used for the current thread."""
        t = threading.current_thread()

        with self._socket_pool_lock:
            if t not in self._socket_pool:
                sock = self.context.socket(zmq.REQ)

                sock.setsockopt(zmq.RCVTIMEO, self.timeout_ms)
                sock.setsockopt(zmq.SNDTIMEO, self.timeout_ms)

                sock.connect(self.endpoint)

                self._socket_pool[t] = sock

            return self._socket_pool[t]

    def _discard_socket(self) -> None:
        """
        Close the socket of the current thread.

        A REQ socket that timed out waiting for a reply can't send another request, so
        the next call from this thread will open a fresh one.
        """
        with self._socket_pool_lock:
            sock = self._socket_pool.pop(threading.current_thread(), None)

        if sock is not None:
            sock.close(linger=0)

    def __del__(self) -> None:
        """Close the client sockets and their ZeroMQ context."""
        with self._socket_pool_lock:
            for sock in self._socket_pool.values():
                sock.close(linger=0)

            self.context.destroy()

    @staticmethod
    def _summarize_args(args: tuple) -> Tuple[str, ...]:
        return tuple([summarize(arg, max_length=64) for arg in args])

    def __getattr__(self, name: str) -> Callable[..., Any]:
        """Retrieve a wrapper to call the specified remote function."""

        def fn(*args: Any) -> Any:
            """
            Call the remote function with the given arguments.

            ZeroMQ connections are stateless so the token is sent again with every call.
            """
            sock = self._socket()

            t_call = time.time()

            try:
                sock.send(self._encoding.pack((self.token, name, *args)))
                typ, *ret = self._encoding.unpack(sock.recv())
            except zmq.ZMQError:
                self._discard_socket()
                raise IOError(f"rpc call {name} timed out")

            # Explicit check before logging because _summarize_args is relatively slow
            if log.isEnabledFor(logging.DEBUG):
                t_millis = round((time.time() - t_call) * 1000)
                log.debug(f"rpc::{name}{self._summarize_args(args)} - {t_millis} ms")

            if typ == ReturnType.NORMAL.value:
                return ret[0]
            elif typ == ReturnType.EXCEPTION.value:
                raise ret[0]
            elif typ == ReturnType.TOKEN_ERROR.value:
                raise InvalidTokenError("token mismatch between client and server")
            else:
                raise ValueError(f"unexpected return type {typ}")

        return fn
