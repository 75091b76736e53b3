"""OpenAI vision wrapper used to read medication labels."""

from __future__ import annotations

from openai import AsyncOpenAI, OpenAIError

from medicontrol.core.config import Settings

LABEL_PROMPT = (
    "You are an expert pharmacist. Read the medication package in the image and "
    "answer with a single JSON object with these keys: name, genericName, dose "
    "(number), doseUnit (one of mg, ml, tablet, drop, capsule, gram, unit), "
    "laboratory, lot, expiration, stockInBox (number) and confidence (0 to 1). "
    "Use null for anything you cannot read."
)


class VisionClientError(RuntimeError):
    """Raised when the vision model call fails."""


class VisionClient:
    """Single-purpose chat-completions client for label images."""

    def __init__(self, api_key: str, *, model: str, timeout: float = 30.0) -> None:
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)
        self._model = model

    async def describe_label(self, image_url: str) -> str:
        """Return the raw model answer for a label image (data URL or https URL)."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                temperature=0.1,
                max_tokens=500,
                messages=[
                    {"role": "system", "content": LABEL_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "image_url", "image_url": {"url": image_url}},
                            {"type": "text", "text": "Extract the medication details as JSON."},
                        ],
                    },
                ],
            )
        except OpenAIError as exc:
            raise VisionClientError(str(exc)) from exc
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise VisionClientError("Vision model returned an empty answer")
        return content


def build_vision_client(settings: Settings) -> VisionClient | None:
    if not settings.openai_api_key:
        return None
    return VisionClient(
        settings.openai_api_key,
        model=settings.vision_model,
        timeout=settings.vision_timeout_seconds,
    )
