import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from google import genai
from google.genai import types

from ..errors import AIUnavailableError
from ..settings import settings

logger = logging.getLogger("pantryplan.ai")


@dataclass
class TextGeneration:
    text: str
    truncated: bool = False


class AIClient:
    _instance = None

    def __init__(self, mode: Optional[str] = None, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.mode = mode or settings.ai_mode  # "mock" or "gemini"
        self.model = model or settings.gemini_text_model
        self._client: Optional[genai.Client] = None
        self.last_error: Optional[str] = None
        self.last_error_at: Optional[datetime] = None

        if self.mode == "gemini" and self.api_key:
            self._client = genai.Client(api_key=self.api_key)

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def is_mock(self) -> bool:
        return self.mode == "mock"

    def is_available(self) -> bool:
        return self.mode == "gemini" and self._client is not None

    async def generate_json_text(
        self,
        prompt: str,
        system_instruction: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> Optional[TextGeneration]:
        """
        Ask Gemini for a JSON document and return the raw text.

        Returns None when the call itself fails (the error is kept in
        `last_error`); `truncated` is set when the output budget ran out.
        Raises AIUnavailableError when no model is configured.
        """
        if not self.is_available():
            raise AIUnavailableError("Aucun modèle IA configuré (GEMINI_API_KEY manquant).")

        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            system_instruction=system_instruction,
            max_output_tokens=max_output_tokens or settings.ai_max_output_tokens,
            temperature=temperature,
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            self.last_error = f"{e.__class__.__name__}: {str(e)}"
            self.last_error_at = datetime.now(timezone.utc)
            logger.error(f"Gemini generation failed: {e}")
            return None

        finish_reason = None
        if response.candidates:
            finish_reason = response.candidates[0].finish_reason
        truncated = finish_reason == types.FinishReason.MAX_TOKENS
        if truncated:
            logger.warning("Gemini output truncated at %s tokens", config.max_output_tokens)

        return TextGeneration(text=response.text or "", truncated=truncated)


# Singleton instance access
ai_client = AIClient.get_instance()
