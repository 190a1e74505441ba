# main.py
import os
from dotenv import load_dotenv
load_dotenv(override=True)

import logging
from functools import lru_cache

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from client_identity import resolve_client_identity
from models import ChatRequest, ChatResponse, ErrorResponse
from pipeline import handle_chat
from provider import GeminiProvider, ModelProvider
from rate_limit import RateLimiter
from settings import Settings

# --- Settings ---
settings = Settings()

def get_settings() -> Settings:
    return settings

# --- Logging ---
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="StudyCareer Chat API", version="1.0.0")

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# One client per key so HTTP connections are reused across requests;
# a rotated key gets a fresh client.
@lru_cache(maxsize=4)
def gemini_provider_factory(api_key: str) -> ModelProvider:
    s = get_settings()
    return GeminiProvider(api_key, max_output_tokens=s.MAX_OUTPUT_TOKENS, temperature=s.TEMPERATURE)


# --- Rate limiter (in-memory, one per process) ---
# Multiple workers/instances each keep their own counts; this is best-effort.
app.state.rate_limiter = RateLimiter(sweep_interval_ms=settings.RATE_LIMIT_SWEEP_INTERVAL_MS)
app.state.provider_factory = gemini_provider_factory

logger.info(
    "Chat API ready (model=%s, limit=%d per %d ms, pid=%d)",
    settings.MODEL_NAME, settings.RATE_LIMIT, settings.RATE_LIMIT_WINDOW_MS, os.getpid(),
)

CHAT_RESPONSES = {
    200: {"model": ChatResponse},
    400: {"model": ErrorResponse, "description": "Empty or too long input"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    500: {"model": ErrorResponse, "description": "Misconfiguration or provider failure"},
}

@app.get("/healthz")
def healthz():
    return {"ok": True}

@app.post("/api/chat", responses=CHAT_RESPONSES)
@app.post("/chat", responses=CHAT_RESPONSES, include_in_schema=False)
async def chat(request: Request):
    s = get_settings()
    limiter: RateLimiter = request.app.state.rate_limiter

    identity = resolve_client_identity(request.headers)
    admission = limiter.admit(identity, s.RATE_LIMIT, s.RATE_LIMIT_WINDOW_MS)

    raw_body = await request.body()

    # provider call blocks; keep it off the event loop
    result = await run_in_threadpool(
        handle_chat,
        raw_body,
        admission,
        api_key=s.API_KEY,
        provider_factory=request.app.state.provider_factory,
        model_id=s.MODEL_NAME,
        max_input_chars=s.MAX_INPUT_CHARS,
        now_ms=limiter.now(),
    )
    return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)


# The chat handler reads the raw body (malformed input degrades to "empty"),
# so FastAPI cannot infer the request schema; document it by hand.
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(title=app.title, version=app.version, routes=app.routes)
    request_schema = ChatRequest.model_json_schema(ref_template="#/components/schemas/{model}")
    components = schema.setdefault("components", {}).setdefault("schemas", {})
    components.update(request_schema.pop("$defs", {}))
    components["ChatRequest"] = request_schema
    schema["paths"]["/api/chat"]["post"]["requestBody"] = {
        "required": True,
        "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ChatRequest"}}},
    }
    app.openapi_schema = schema
    return app.openapi_schema

app.openapi = custom_openapi
