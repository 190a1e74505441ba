# settings.py
import os
from pydantic import BaseModel, ConfigDict, field_validator

class Settings(BaseModel):
    API_KEY: str = os.getenv("GOOGLE_GENAI_API_KEY", "")
    MODEL_NAME: str = os.getenv("MODEL_NAME", "gemini-2.5-flash")
    MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "1200"))
    TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.3"))
    # rate limiting knobs (per identity, per process)
    RATE_LIMIT: int = int(os.getenv("RATE_LIMIT", "60"))
    RATE_LIMIT_WINDOW_MS: int = int(os.getenv("RATE_LIMIT_WINDOW_MS", "60000"))
    RATE_LIMIT_SWEEP_INTERVAL_MS: int = int(os.getenv("RATE_LIMIT_SWEEP_INTERVAL_MS", "300000"))
    # input guard
    MAX_INPUT_CHARS: int = int(os.getenv("MAX_INPUT_CHARS", "6000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ALLOW_ORIGINS: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_default=True)

    @field_validator("RATE_LIMIT", "RATE_LIMIT_WINDOW_MS", "MAX_INPUT_CHARS")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("RATE_LIMIT_SWEEP_INTERVAL_MS")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0 (0 disables sweeping)")
        return v

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]
