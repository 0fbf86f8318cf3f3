from pydantic import BaseModel, ConfigDict, Field, field_validator
from starlette.datastructures import MutableHeaders
from starlette.types import Message, Receive, Scope, Send
from typing import Any, Awaitable, Callable, Optional


class Request(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    host: str = ""
    method: str = ""
    request_uri: str = ""
    user_agent: str = ""
    remote_addr: str = ""
    headers: MutableHeaders = Field(default_factory=MutableHeaders)

    @field_validator("headers", mode="before")
    @classmethod
    def coerce_headers(cls, value):
        if isinstance(value, MutableHeaders):
            return value
        return MutableHeaders(headers=dict(value or {}))


class Response(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: int = 0
    size: int = 0
    committed: bool = False
    headers: MutableHeaders = Field(default_factory=MutableHeaders)

    @field_validator("headers", mode="before")
    @classmethod
    def coerce_headers(cls, value):
        if isinstance(value, MutableHeaders):
            return value
        return MutableHeaders(headers=dict(value or {}))


ErrorHandler = Callable[[Exception, "Context"], Awaitable[None]]


class Context:
    """Per-request state handed to the request logger and its next handler.

    Holds the inbound request, the response as it is being written, and the
    error channel through which handler errors reach the host's error
    response logic.
    """

    def __init__(
        self,
        request: Request,
        response: Optional[Response] = None,
        *,
        scope: Optional[Scope] = None,
        receive: Optional[Receive] = None,
        send: Optional[Send] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.request = request
        self.response = response if response is not None else Response()
        self.scope = scope
        self.receive = receive
        self._send = send
        self._error_handler = error_handler

    def real_ip(self) -> str:
        forwarded = self.request.headers.get("x-forwarded-for", "")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
            if ip:
                return ip.strip("[]")
        real = self.request.headers.get("x-real-ip", "")
        if real:
            return real.strip().strip("[]")
        return _split_host(self.request.remote_addr)

    async def error(self, exc: Exception) -> None:
        if self._error_handler is not None:
            await self._error_handler(exc, self)

    async def send(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.response.status = message["status"]
            self.response.headers = MutableHeaders(raw=list(message.get("headers", [])))
            self.response.committed = True
        elif message["type"] == "http.response.body":
            self.response.size += len(message.get("body", b""))
        if self._send is not None:
            await self._send(message)


def _split_host(addr: str) -> str:
    # host:port or [host]:port only; anything else yields no address
    if addr.startswith("["):
        end = addr.find("]:")
        if end != -1 and addr[end + 2:]:
            return addr[1:end]
        return ""
    if addr.count(":") == 1:
        host, port = addr.split(":")
        return host if port else ""
    return ""


def request_from_scope(scope: Scope) -> Request:
    headers = MutableHeaders(raw=list(scope.get("headers", [])))
    path = scope.get("raw_path") or scope.get("path", "").encode("utf-8")
    request_uri = path.decode("latin-1")
    query_string = scope.get("query_string", b"")
    if query_string:
        request_uri += "?" + query_string.decode("latin-1")

    client: Any = scope.get("client")
    remote_addr = ""
    if client:
        host, port = client[0], client[1]
        remote_addr = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"

    return Request(
        host=headers.get("host", ""),
        method=scope.get("method", ""),
        request_uri=request_uri,
        user_agent=headers.get("user-agent", ""),
        remote_addr=remote_addr,
        headers=headers,
    )
