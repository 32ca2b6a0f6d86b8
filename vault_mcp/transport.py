"""
Streamable HTTP transport.

One FastAPI application per server run, bound to the run's immutable tool
snapshot. MCP clients speak JSON-RPC 2.0 over POST /mcp; the REST routes
mirror the same tools for quick manual use.
"""

import asyncio
import contextlib
import json
import logging
import socket
import uuid
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel
from starlette.requests import ClientDisconnect

from . import __version__
from .config import MCP_PATH
from .dispatcher import CallEnvelope, Dispatcher
from .registry import ActiveToolSnapshot

logger = logging.getLogger(__name__)

SERVER_NAME = "Vault MCP Server"
DEFAULT_PROTOCOL_VERSION = "2025-03-26"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
CLIENT_DISCONNECTED = -32001


class TransportError(Exception):
    """Protocol-level fault observed while serving."""
    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(message)


ErrorCallback = Callable[[TransportError], None]
ExitCallback = Callable[[], None]


class ToolRequest(BaseModel):
    """Request body for tool execution."""

    arguments: Dict[str, Any] = {}


class ToolResponse(BaseModel):
    """Response from tool execution."""

    success: bool
    tool: str
    result: Any = None
    error: Optional[Dict[str, Any]] = None


def _rpc_error(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def _rpc_result(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _wants_event_stream(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/event-stream" in accept and "application/json" not in accept and "*/*" not in accept


def create_app(
    snapshot: ActiveToolSnapshot,
    dispatcher: Dispatcher,
    on_error: Optional[ErrorCallback] = None,
) -> FastAPI:
    """Build the ASGI application for one server run."""

    def report(error: TransportError) -> None:
        logger.error(f"MCP transport error {error.code}: {error.message}")
        if on_error is not None:
            on_error(error)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"MCP Server starting with {len(snapshot)} tools")
        for name in snapshot:
            logger.debug(f"  - {name}")
        yield
        logger.info("MCP Server shutting down")

    app = FastAPI(title=SERVER_NAME, version=__version__, lifespan=lifespan)

    def respond(request: Request, payload: Dict[str, Any], headers: Dict[str, str] = None) -> Response:
        if _wants_event_stream(request):
            async def events():
                yield f"event: message\ndata: {json.dumps(jsonable_encoder(payload), ensure_ascii=False)}\n\n"
            return StreamingResponse(events(), media_type="text/event-stream", headers=headers)
        return JSONResponse(jsonable_encoder(payload), headers=headers)

    async def call_tool(params: Dict[str, Any]) -> Dict[str, Any]:
        envelope = await dispatcher.dispatch(
            snapshot,
            CallEnvelope(tool_name=params["name"], arguments=params.get("arguments") or {}),
        )
        # front-matter dates and similar values become JSON strings here
        payload = jsonable_encoder(envelope.to_payload())
        return {
            "content": [{"type": "text", "text": json.dumps(payload, ensure_ascii=False)}],
            "structuredContent": payload if isinstance(payload, dict) else {"result": payload},
            "isError": not envelope.ok,
        }

    async def handle_rpc(message: Dict[str, Any]) -> Dict[str, Any]:
        request_id = message.get("id")
        method = message["method"]
        params = message.get("params") or {}
        if not isinstance(params, dict):
            return _rpc_error(request_id, INVALID_PARAMS, "params must be an object")

        if method == "initialize":
            return _rpc_result(request_id, {
                "protocolVersion": params.get("protocolVersion", DEFAULT_PROTOCOL_VERSION),
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            })
        if method == "ping":
            return _rpc_result(request_id, {})
        if method == "tools/list":
            return _rpc_result(request_id, {"tools": snapshot.to_mcp_tools()})
        if method == "tools/call":
            if not isinstance(params.get("name"), str):
                return _rpc_error(request_id, INVALID_PARAMS, "tools/call requires a tool name")
            return _rpc_result(request_id, await call_tool(params))

        logger.info(f"Unsupported MCP method: {method}")
        return _rpc_error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    @app.post(MCP_PATH)
    async def mcp_endpoint(request: Request):
        try:
            body = await request.body()
        except ClientDisconnect:
            report(TransportError(CLIENT_DISCONNECTED, "Client disconnected"))
            return Response(status_code=400)

        try:
            message = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            report(TransportError(PARSE_ERROR, f"Parse error: {e}"))
            return JSONResponse(_rpc_error(None, PARSE_ERROR, "Parse error"), status_code=400)

        if (
            not isinstance(message, dict)
            or message.get("jsonrpc") != "2.0"
            or not isinstance(message.get("method"), str)
        ):
            report(TransportError(INVALID_REQUEST, "Invalid JSON-RPC request"))
            request_id = message.get("id") if isinstance(message, dict) else None
            return JSONResponse(_rpc_error(request_id, INVALID_REQUEST, "Invalid Request"), status_code=400)

        # notifications carry no id and get no body back
        if "id" not in message:
            return Response(status_code=202)

        try:
            payload = await handle_rpc(message)
        except Exception as e:
            logger.exception("Unhandled error while serving MCP request")
            report(TransportError(INTERNAL_ERROR, str(e)))
            payload = _rpc_error(message.get("id"), INTERNAL_ERROR, "Internal error")

        headers = None
        if message["method"] == "initialize":
            headers = {"Mcp-Session-Id": uuid.uuid4().hex}
        return respond(request, payload, headers)

    @app.get(MCP_PATH)
    async def mcp_stream():
        # no server-initiated messages
        return Response(status_code=405, headers={"Allow": "POST"})

    # ============== REST Endpoints ==============

    @app.get("/")
    async def root():
        return {
            "service": SERVER_NAME,
            "version": __version__,
            "tools_count": len(snapshot),
            "endpoints": {
                "mcp": MCP_PATH,
                "list_tools": "/tools",
                "execute": "/tools/{tool_name}/execute",
                "health": "/health",
            },
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy", "tools_loaded": len(snapshot)}

    @app.get("/tools")
    async def list_tools():
        tools = snapshot.to_mcp_tools()
        return {"total": len(tools), "tools": tools}

    @app.post("/tools/{tool_name}/execute", response_model=ToolResponse)
    async def execute_tool_endpoint(tool_name: str, request: ToolRequest):
        envelope = await dispatcher.dispatch(
            snapshot, CallEnvelope(tool_name=tool_name, arguments=request.arguments)
        )
        return ToolResponse(
            success=envelope.ok,
            tool=tool_name,
            result=envelope.result,
            error=envelope.error,
        )

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the owning process."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class HttpStreamTransport:
    """
    Serves an application on host:port until stopped.

    The listening socket is bound in start() itself, so a port conflict
    raises OSError to the caller instead of failing inside the server task.
    """

    def __init__(
        self,
        app: FastAPI,
        host: str,
        port: int,
        on_error: Optional[ErrorCallback] = None,
        on_exit: Optional[ExitCallback] = None,
    ):
        self.app = app
        self.host = host
        self.port = port
        self.on_error = on_error
        self.on_exit = on_exit
        self._server: Optional[_EmbeddedServer] = None
        self._task: Optional[asyncio.Task] = None
        self._stopping = False
        self._listening = False

    @property
    def is_serving(self) -> bool:
        return self._task is not None and not self._task.done()

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        sock.set_inheritable(True)
        return sock

    async def start(self) -> None:
        sock = self._bind()
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(self.app, log_config=None, lifespan="on")
        self._server = _EmbeddedServer(config)
        self._stopping = False
        self._listening = False
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))
        self._task.add_done_callback(self._on_serve_done)

        while not self._server.started:
            if self._task.done():
                sock.close()
                error = self._task.exception() if not self._task.cancelled() else None
                self._server, self._task = None, None
                raise OSError(f"MCP server failed to start on port {self.port}: {error}")
            await asyncio.sleep(0.01)

        self._listening = True
        logger.info(f"MCP endpoint listening on http://{self.host}:{self.port}{MCP_PATH}")

    async def stop(self) -> None:
        """Stop accepting connections and wait for in-flight requests to drain."""
        if self._server is None:
            return
        self._stopping = True
        self._server.should_exit = True
        try:
            await self._task
        finally:
            self._server, self._task = None, None
            self._listening = False
        logger.info(f"MCP endpoint on port {self.port} closed")

    def _on_serve_done(self, task: asyncio.Task) -> None:
        # failures before the listener came up are raised from start()
        if self._stopping or not self._listening:
            return
        self._listening = False
        self._server, self._task = None, None

        error = task.exception() if not task.cancelled() else None
        message = str(error) if error else "server exited unexpectedly"
        logger.error(f"MCP server task ended: {message}")
        if self.on_error is not None:
            self.on_error(TransportError(INTERNAL_ERROR, message))
        if self.on_exit is not None:
            self.on_exit()


def http_transport_factory(
    config,
    snapshot: ActiveToolSnapshot,
    dispatcher: Dispatcher,
    on_error: ErrorCallback,
    on_exit: Optional[ExitCallback] = None,
):
    """Default transport factory used by the lifecycle manager."""
    app = create_app(snapshot, dispatcher, on_error=on_error)
    return HttpStreamTransport(app, host=config.host, port=config.port, on_error=on_error, on_exit=on_exit)
