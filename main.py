# SPDX-License-Identifier: GPL-3.0-or-later
#
# Textcall: Function calling for text-completion language models.
# Copyright (C) 2025 FunnyCups (https://github.com/funnycups)

"""
Main FastAPI application for Textcall.
Serves dialogue turns over HTTP, with function calling on top of a text-completion backend.
"""

import json
import time
import logging
import traceback
import httpx
from typing import List, Optional, Set

from fastapi import FastAPI, Request, Header, HTTPException, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

# Textcall modules
from config_loader import config_loader, AppConfig
from textcall_core.dialogue import Dialogue
from textcall_core.errors import ModelBackendError
from textcall_core.function_calling import generate_function_prompt
from textcall_core.models import DialogueMessage, GenerationSettings, Role
from textcall_core.orchestrator import FunctionCallOrchestrator
from textcall_core.plugins import build_default_registry
from textcall_core.token_counter import TokenCounter
from textcall_core.upstream_model import HttpCompletionModel

logger = logging.getLogger(__name__)

# Global variables
app_config: AppConfig = None
ALLOWED_CLIENT_KEYS: Set[str] = set()
DEFAULT_SETTINGS: GenerationSettings = None
FUNCTION_PROMPT: str = ""
registry = build_default_registry()
token_counter = TokenCounter()
http_client = httpx.AsyncClient()
orchestrator: FunctionCallOrchestrator = None


def load_runtime_config():
    """Load configuration and rebuild the globals derived from it."""
    global app_config, ALLOWED_CLIENT_KEYS, DEFAULT_SETTINGS, FUNCTION_PROMPT, orchestrator

    app_config = config_loader.load_config()

    log_level_str = app_config.features.log_level
    if log_level_str == "DISABLED":
        log_level = logging.CRITICAL + 1
    else:
        log_level = getattr(logging, log_level_str, logging.INFO)

    # Reuse existing handlers, e.g. when running under a test harness
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        root_logger.setLevel(log_level)

    logger.info(f"✅ Configuration loaded successfully: {config_loader.config_path}")
    logger.info(f"📊 Upstream backend: {app_config.upstream.name} ({app_config.upstream.base_url})")
    logger.info(f"🔑 Configured {len(app_config.client_authentication.allowed_keys)} client keys")

    ALLOWED_CLIENT_KEYS = config_loader.get_allowed_client_keys()
    DEFAULT_SETTINGS = config_loader.get_generation_settings()
    FUNCTION_PROMPT = generate_function_prompt(registry, app_config.features.prompt_template)

    completion_model = HttpCompletionModel(
        http_client,
        app_config.upstream.base_url,
        api_key=app_config.upstream.api_key,
        model=app_config.upstream.model,
        timeout=app_config.upstream.timeout,
    )
    orchestrator = FunctionCallOrchestrator(
        completion_model,
        default_settings=DEFAULT_SETTINGS,
        stop_labels=app_config.features.stop_labels,
    )

    logger.info(f"🎯 Registered {len(registry)} functions: {registry.names()}")


# Load configuration at startup
try:
    load_runtime_config()
except Exception as e:
    logger.error(f"❌ Configuration loading failed: {type(e).__name__}")
    logger.error(f"❌ Error details: {str(e)}")
    logger.error("💡 Copy config.example.yaml to config.yaml or set TEXTCALL_CONFIG")
    exit(1)


# Initialize FastAPI app
app = FastAPI()


class DialogueCompletionRequest(BaseModel):
    """A dialogue turn request. The client owns the dialogue and resends it each turn."""
    messages: List[DialogueMessage] = Field(description="Dialogue so far, oldest first")
    max_tokens: Optional[int] = Field(default=None, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    stop: Optional[List[str]] = Field(default=None, description="Additional stop sequences")
    auto_invoke: Optional[bool] = Field(default=None, description="Override function calling for this turn")
    stream: bool = False


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors with detailed error information."""
    logger.error(f"❌ Request validation error for {request.method} {request.url.path}")
    for i, error in enumerate(exc.errors(), 1):
        logger.error(f"   Error {i}: {' -> '.join(str(loc) for loc in error.get('loc', []))}: {error.get('msg')}")

    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "message": "Invalid request format",
                "type": "invalid_request_error",
                "code": "invalid_request",
                "details": json.loads(json.dumps(exc.errors(), default=str))
            }
        }
    )


@app.exception_handler(ModelBackendError)
async def model_backend_exception_handler(request: Request, exc: ModelBackendError):
    """Upstream model failures are surfaced as-is, without partial output."""
    logger.error(f"❌ Upstream model failure: {exc} (status_code={exc.status_code})")
    return JSONResponse(
        status_code=502,
        content={
            "error": {
                "message": str(exc),
                "type": "upstream_error",
                "code": "upstream_failure"
            }
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Anything else becomes an opaque 500."""
    logger.error(f"❌ Unhandled exception: {exc}")
    logger.error(f"❌ Request URL: {request.url}")
    logger.error(f"❌ Exception type: {type(exc).__name__}")
    logger.error(f"❌ Error stack: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error",
                "type": "server_error",
                "code": "internal_error"
            }
        }
    )


async def verify_api_key(authorization: str = Header(...)):
    """Dependency: accept only configured bearer keys."""
    client_key = authorization.replace("Bearer ", "")
    if client_key not in ALLOWED_CLIENT_KEYS:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return client_key


def build_settings(body: DialogueCompletionRequest) -> GenerationSettings:
    """Merge per-request overrides into the configured defaults."""
    values = DEFAULT_SETTINGS.model_dump()
    if body.max_tokens is not None:
        values["max_tokens"] = body.max_tokens
    if body.temperature is not None:
        values["temperature"] = body.temperature
    if body.top_p is not None:
        values["top_p"] = body.top_p
    if body.stop:
        values["stop_sequences"] = values["stop_sequences"] | frozenset(body.stop)
    if body.auto_invoke is not None:
        values["auto_invoke"] = body.auto_invoke and app_config.features.enable_function_calling
    return GenerationSettings(**values)


def prepare_dialogue(body: DialogueCompletionRequest, settings: GenerationSettings) -> Dialogue:
    """Build the turn's dialogue, injecting the function instructions when function calling is active."""
    messages = list(body.messages)
    if settings.auto_invoke:
        already_present = any(m.role == Role.SYSTEM and m.content == FUNCTION_PROMPT for m in messages)
        if not already_present:
            messages.insert(0, DialogueMessage(role=Role.SYSTEM, content=FUNCTION_PROMPT))
            logger.debug("🔧 Injected function-calling instructions as first system message")
    return Dialogue.from_list(messages)


async def stream_turn_sse(dialogue: Dialogue, settings: GenerationSettings):
    """Stream a turn as SSE: content chunks, then the updated dialogue."""
    try:
        async for fragment in orchestrator.stream_turn(dialogue, settings, registry):
            yield f"data: {json.dumps({'content': fragment}, ensure_ascii=False)}\n\n"
    except ModelBackendError as e:
        logger.error(f"❌ Upstream model failure during stream: {e}")
        error_chunk = {"error": {"message": str(e), "type": "upstream_error"}}
        yield f"data: {json.dumps(error_chunk)}\n\n"
        yield "data: [DONE]\n\n"
        return

    yield f"data: {json.dumps({'messages': dialogue.to_list()}, ensure_ascii=False)}\n\n"
    yield "data: [DONE]\n\n"


@app.get("/")
def read_root():
    """Service status and a summary of the active configuration."""
    return {
        "status": "Textcall dialogue service is running",
        "config": {
            "upstream": app_config.upstream.name,
            "client_keys_count": len(app_config.client_authentication.allowed_keys),
            "functions_count": len(registry),
            "features": {
                "function_calling": app_config.features.enable_function_calling,
                "log_level": app_config.features.log_level,
                "custom_prompt_template": bool(app_config.features.prompt_template),
            }
        }
    }


@app.get("/v1/functions")
async def list_functions(_api_key: str = Depends(verify_api_key)):
    """List registered functions in catalog form."""
    return {
        "object": "list",
        "data": registry.catalog()
    }


@app.post("/v1/dialogue/completions")
async def dialogue_completions(
    body: DialogueCompletionRequest,
    _api_key: str = Depends(verify_api_key)
):
    """Run one dialogue turn, invoking registered functions when the model asks for them."""
    start_time = time.time()
    settings = build_settings(body)
    dialogue = prepare_dialogue(body, settings)

    logger.debug(f"🔧 Received turn: {len(dialogue)} messages, auto_invoke={settings.auto_invoke}, stream={body.stream}")

    if body.stream:
        return StreamingResponse(
            stream_turn_sse(dialogue, settings),
            media_type="text/event-stream"
        )

    sent_prompts: List[str] = []
    content = await orchestrator.complete_turn(dialogue, settings, registry, sent_prompts)

    usage = token_counter.usage(sent_prompts, content)
    elapsed_time = time.time() - start_time
    logger.info(f"📊 Turn completed - Input tokens: {usage['prompt_tokens']}, "
                f"Output tokens: {usage['completion_tokens']}, Duration: {elapsed_time:.2f}s")

    return {
        "content": content,
        "messages": dialogue.to_list(),
        "usage": usage
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"🚀 Starting server on {app_config.server.host}:{app_config.server.port}")
    logger.info(f"⏱️  Request timeout: {app_config.server.timeout} seconds")

    uvicorn.run(
        app,
        host=app_config.server.host,
        port=app_config.server.port,
        log_level=app_config.features.log_level.lower() if app_config.features.log_level != "DISABLED" else "critical"
    )
