"""HTTP surface: chat, chat-init and execute-tool endpoints on FastAPI."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException

from . import __version__
from .auth import ApiKeyGate
from .config import Config
from .errors import MalformedClientInput, MCPressError
from .llm.prompts import WELCOME_MESSAGE, build_system_prompt
from .llm.types import Message, StreamEvent, ToolCall
from .services import Services

logger = logging.getLogger(__name__)

# Leading comment frame; some proxies hold back small responses until ~2KB arrive.
SSE_PADDING = ":" + " " * 2048 + "\n\n"
SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}
STREAM_HEADER = "x-mcpress-stream"


class ChatRequest(BaseModel):
    messages: Optional[list[dict[str, Any]]] = None
    message: Optional[str] = None


class ExecuteToolRequest(BaseModel):
    tool_calls: list[dict[str, Any]]
    messages: list[dict[str, Any]]
    confirm: bool = True


def wants_stream(request: Request) -> bool:
    """Streaming is requested by Accept header, X-MCPress-Stream: 1, or ?stream=1."""
    if "text/event-stream" in request.headers.get("accept", "").lower():
        return True
    if request.headers.get(STREAM_HEADER, "") == "1":
        return True
    return request.query_params.get("stream", "") in ("1", "true")


def parse_messages(raw: list[dict[str, Any]]) -> list[Message]:
    try:
        return [Message.from_dict(item) for item in raw]
    except ValueError as e:
        raise MalformedClientInput(str(e)) from e


def build_chat_messages(req: ChatRequest, services: Services) -> list[Message]:
    """Full history from ``messages``, or a fresh conversation from a legacy ``message``."""
    if req.messages is not None:
        messages = parse_messages(req.messages)
    elif req.message and req.message.strip():
        messages = [
            Message(role="system", content=build_system_prompt(services.site)),
            Message(role="user", content=req.message.strip()),
        ]
    else:
        messages = []
    if not messages:
        raise MalformedClientInput("Messages array cannot be empty.")
    return messages


async def sse_body(request: Request, events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    """Render events as SSE frames; stop pulling from upstream once the client is gone."""
    yield SSE_PADDING
    async with aclosing(events) as stream:
        async for event in stream:
            if await request.is_disconnected():
                logger.info("Client disconnected, closing upstream stream")
                return
            yield event.to_sse()


def error_response(status: int, message: str, code: str = "") -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if code:
        body["code"] = code
    return JSONResponse(status_code=status, content=body)


def create_app(
    services: Services,
    prefix: str = "/mcp/v1",
    allowed_origins: list[str] | None = None,
) -> FastAPI:
    """Build the FastAPI app around already-built services."""
    app = FastAPI(title="mcpress", version=__version__)
    orchestrator = services.orchestrator

    origins = allowed_origins or []
    if "*" in origins and isinstance(services.gate, ApiKeyGate):
        logger.warning(
            "CORS allow_origins contains '*' while API key is set. "
            "This allows any website to call the chat API."
        )
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type", "X-MCPress-Stream"],
        )

    @app.exception_handler(MCPressError)
    async def handle_mcpress_error(request: Request, exc: MCPressError):
        if exc.http_status >= 500:
            logger.warning(f"{request.url.path} failed: {exc.message}")
        return error_response(exc.http_status, exc.message, exc.code)

    @app.exception_handler(HTTPException)
    async def handle_http_error(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, "Invalid request body.", MalformedClientInput.code)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unexpected error on {request.url.path}")
        return error_response(500, "An unexpected error occurred.")

    def require_access(request: Request):
        if not services.gate.allows(request.headers):
            raise HTTPException(status_code=401, detail="Unauthorized.")

    router = APIRouter(prefix=prefix, dependencies=[Depends(require_access)])

    @router.get("/chat-init")
    async def chat_init():
        system = Message(role="system", content=build_system_prompt(services.site))
        return {
            "success": True,
            "messages": [system.to_dict()],
            "display_initial_message": WELCOME_MESSAGE,
        }

    @router.post("/chat")
    async def chat(req: ChatRequest, request: Request):
        messages = build_chat_messages(req, services)
        if wants_stream(request):
            return StreamingResponse(
                sse_body(request, orchestrator.stream_chat(messages)),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )
        result = await orchestrator.chat(messages)
        return result.to_response()

    @router.post("/execute-tool")
    async def execute_tool(req: ExecuteToolRequest):
        try:
            tool_calls = [ToolCall.from_dict(item) for item in req.tool_calls]
        except ValueError as e:
            raise MalformedClientInput("Invalid tool calls or messages provided for execution.") from e
        messages = parse_messages(req.messages)
        result = await orchestrator.execute_tools(tool_calls, messages, confirm=req.confirm)
        return result.to_response()

    @router.get("/providers")
    async def list_providers():
        registry = services.providers
        return {
            "success": True,
            "current": registry.get_current_provider_id(),
            "providers": [
                {
                    "id": provider_id,
                    "label": label,
                    "streaming": registry.supports_streaming(provider_id),
                    "options": [field.to_dict() for field in registry.get_options_schema(provider_id)],
                }
                for provider_id, label in registry.providers_with_labels().items()
            ],
        }

    app.include_router(router)

    @app.get(f"{prefix}/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "provider": services.providers.get_current_provider_id(),
            "tools": services.tools.tool_names(),
        }

    return app


class WebServer:
    """Serves the app with uvicorn until stopped."""

    def __init__(self, config: Config, services: Services):
        self.host = config.server.host
        self.port = config.server.port
        self.app = create_app(services, config.server.prefix, config.server.allowed_origins)
        self._server: uvicorn.Server | None = None

    async def start(self) -> None:
        server_config = uvicorn.Config(self.app, host=self.host, port=self.port, log_level="info")
        self._server = uvicorn.Server(server_config)
        logger.info(f"mcpress listening on {self.host}:{self.port}")
        await self._server.serve()

    async def stop(self) -> None:
        if self._server:
            self._server.should_exit = True
            logger.info("mcpress server stopped")
