# provider.py
from typing import Optional, Protocol

from google import genai
from google.genai import types


class ProviderError(Exception):
    """Any failure talking to the model provider (network, timeout, API error)."""


class ModelProvider(Protocol):
    def complete(self, model_id: str, input_text: str, system_instruction: Optional[str] = None) -> str:
        ...


class GeminiProvider:
    """Single-shot text completion over google-genai. No retries, no caching."""

    def __init__(self, api_key: str, max_output_tokens: int = 1200, temperature: float = 0.3):
        self.client = genai.Client(api_key=api_key)
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature

    def complete(self, model_id: str, input_text: str, system_instruction: Optional[str] = None) -> str:
        try:
            response = self.client.models.generate_content(
                model=model_id,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    max_output_tokens=self.max_output_tokens,
                    temperature=self.temperature,
                ),
                contents=[{"role": "user", "parts": [{"text": input_text}]}],
            )
        except Exception as e:
            raise ProviderError(str(e) or e.__class__.__name__) from e

        text = response.text if hasattr(response, "text") else ""
        return text or ""
