# models.py
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

class ChatMode(str, Enum):
    STUDY = "study"
    CAREER = "career"

class ChatMessage(BaseModel):
    role: Literal["user", "assistant"] = "user"
    content: str = ""

class ChatRequest(BaseModel):
    mode: ChatMode = Field(ChatMode.STUDY, description="Conversation mode (study | career)")
    system: Optional[str] = Field(None, description="Client-side system prompt; accepted but not used")
    messages: List[ChatMessage] = Field(default_factory=list, description="Ordered conversation turns")

class ResponseMeta(BaseModel):
    remaining: int = Field(..., ge=0, description="Requests left in the current rate-limit window")

class ChatResponse(BaseModel):
    output: str
    meta: ResponseMeta

class ErrorResponse(BaseModel):
    error: str
    hint: Optional[str] = None
