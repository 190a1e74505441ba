# pipeline.py
"""
Chat request pipeline: admission result + raw body in, status/body/headers out.

Each step is a hard gate; the first failing check produces its own envelope:

    rate limited      -> 429 {error, hint} + Retry-After
    missing API key   -> 500 {error, hint}
    empty input       -> 400 {error, hint}
    input too long    -> 400 {error, hint}
    greeting          -> 200 {output, meta}   (provider not called)
    provider call     -> 200 {output, meta} | 500 {error, hint}

Malformed bodies are not parse errors, they just count as "no content".
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from models import ChatMode, ChatResponse, ErrorResponse, ResponseMeta
from provider import ModelProvider
from rate_limit import AdmissionResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUT_CHARS = 6000

GREETINGS = frozenset({"hi", "hello", "hey", "assalamualaikum", "assalamu alaikum", "salam"})

GREETING_REPLY = (
    "Hi! 👋\n\n"
    "✅ Study mode: Ask any topic (e.g., *Explain CNN*)\n"
    "✅ Career mode: Ask *Recommend my major*"
)

NO_RESPONSE_PLACEHOLDER = "No response"

SYSTEM_INSTRUCTIONS: Dict[ChatMode, str] = {
    ChatMode.STUDY: (
        "You are an AI Study Assistant for university students.\n"
        "Return in this structure:\n"
        "1) Simple explanation\n"
        "2) Short notes (bullets)\n"
        "3) 5 MCQ with answers\n"
        "4) Quick revision summary (5-7 lines)\n"
        "Use friendly tone."
    ),
    ChatMode.CAREER: (
        "You are an AI Career & Major Recommendation Assistant.\n"
        "First ask 6 short questions (interests, skills, favorite subjects, CGPA, time/week, goal),\n"
        "then recommend: 2 majors + reasons, 3 career paths, skill roadmap, 30-day plan."
    ),
}


@dataclass
class PipelineResult:
    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


def _error(status_code: int, error: str, hint: Optional[str] = None, headers: Optional[Dict[str, str]] = None) -> PipelineResult:
    body = ErrorResponse(error=error, hint=hint).model_dump(exclude_none=True)
    return PipelineResult(status_code, body, headers or {})


def _ok(output: str, remaining: int) -> PipelineResult:
    body = ChatResponse(output=output, meta=ResponseMeta(remaining=remaining)).model_dump()
    return PipelineResult(200, body)


def parse_body(raw_body: Union[bytes, str, None]) -> Dict[str, Any]:
    if not raw_body:
        return {}
    try:
        data = json.loads(raw_body)
    except (ValueError, TypeError):
        return {}
    return data if isinstance(data, dict) else {}


def extract_messages(body: Dict[str, Any]) -> List[Any]:
    msgs = body.get("messages")
    return msgs if isinstance(msgs, list) else []


def resolve_mode(body: Dict[str, Any]) -> ChatMode:
    try:
        return ChatMode(body.get("mode"))
    except (ValueError, TypeError):
        return ChatMode.STUDY


def join_messages(messages: List[Any]) -> str:
    parts = []
    for m in messages:
        content = m.get("content") if isinstance(m, dict) else None
        parts.append("" if content is None else str(content))
    return "\n".join(parts).strip()


def is_greeting(text: str) -> bool:
    return text.strip().lower() in GREETINGS


def handle_chat(
    raw_body: Union[bytes, str, None],
    admission: AdmissionResult,
    *,
    api_key: str,
    provider_factory: Callable[[str], ModelProvider],
    model_id: str,
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
    now_ms: Optional[float] = None,
) -> PipelineResult:
    # 1) rate limit
    if not admission.admitted:
        retry_after = admission.retry_after_seconds(now_ms)
        return _error(
            429,
            "Rate limit exceeded",
            f"Please wait {retry_after} seconds and try again.",
            headers={"Retry-After": str(retry_after)},
        )

    # 2) credentials
    if not api_key:
        logger.error("GOOGLE_GENAI_API_KEY is not configured; refusing chat request")
        return _error(500, "Server misconfigured", "Missing GOOGLE_GENAI_API_KEY in environment variables.")

    try:
        # 3) + 4) permissive parse and join
        body = parse_body(raw_body)
        joined = join_messages(extract_messages(body))

        if not joined:
            return _error(400, "Empty message", "Type something first 🙂")

        if len(joined) > max_input_chars:
            return _error(400, "Input too long", f"Please shorten your message (max ~{max_input_chars} chars).")

        # quick reply, saves a provider round trip
        if is_greeting(joined):
            return _ok(GREETING_REPLY, admission.remaining)

        mode = resolve_mode(body)
        provider = provider_factory(api_key)
        text = provider.complete(model_id, joined, system_instruction=SYSTEM_INSTRUCTIONS[mode])
        return _ok(text or NO_RESPONSE_PLACEHOLDER, admission.remaining)
    except Exception as e:
        logger.exception("Chat request failed")
        return _error(500, "Server error", str(e) or "Unknown error")
