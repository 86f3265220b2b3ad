"""
Gemini Completion Client

Wire-level adapter for Google Generative AI. Retries live in the gateway,
not here: one call to complete() is exactly one request.
"""

import base64
from typing import Optional

import google.generativeai as genai

from finai.config import AISettings, get_settings
from finai.services.ai.gateway import UserContent


class GeminiCompletionClient:
    """CompletionClient backed by google-generativeai."""

    def __init__(self, settings: Optional[AISettings] = None):
        self._settings = settings or get_settings().ai
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    @staticmethod
    def _to_parts(user_content: UserContent) -> list:
        """Translate provider-neutral content blocks into Gemini parts."""
        if isinstance(user_content, str):
            return [user_content]

        parts = []
        for block in user_content:
            if block.get("type") == "image":
                parts.append({
                    "mime_type": block["mime_type"],
                    "data": base64.b64decode(block["data"]),
                })
            else:
                parts.append(block.get("text", ""))
        return parts

    async def complete(
        self,
        *,
        model: str,
        system_prompt: str,
        user_content: UserContent,
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        generative_model = genai.GenerativeModel(
            model_name=model,
            system_instruction=system_prompt,
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_tokens,
            },
        )
        response = await generative_model.generate_content_async(
            self._to_parts(user_content),
            request_options={"timeout": timeout},
        )

        try:
            return response.text
        except ValueError:
            # Blocked or candidate-less response; the gateway treats "" as a failed attempt
            return ""
