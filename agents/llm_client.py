# agents/llm_client.py
import os
from typing import Optional

import google.generativeai as genai
import structlog
from dotenv import load_dotenv

from errors import ReviewError, to_review_error

load_dotenv()

logger = structlog.get_logger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiClient:
    """
    Thin async wrapper around a Gemini model.

    Vendor exceptions are re-raised as ReviewError so callers only ever
    see a status code and a message.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, temperature: float = 0.3):
        api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ReviewError("GEMINI_API_KEY is missing", status=401)
        genai.configure(api_key=api_key)
        self.model_name = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        self.temperature = temperature
        self._model = genai.GenerativeModel(self.model_name)

    async def generate(self, prompt: str, max_tokens: int = 512, system: Optional[str] = None) -> str:
        if system:
            prompt = f"{system}\n\n{prompt}"
        try:
            response = await self._model.generate_content_async(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=max_tokens,
                    temperature=self.temperature,
                ),
            )
            text = response.text
        except Exception as e:
            logger.error("Gemini request failed", model=self.model_name, error=str(e))
            raise to_review_error(e) from e

        if not text:
            raise ReviewError("Unexpected empty response from Gemini")
        return text.strip()
