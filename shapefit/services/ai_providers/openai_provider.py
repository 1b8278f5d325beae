from typing import Any, Dict, List, Optional

import structlog
from openai import AsyncOpenAI, OpenAIError

from ...config import settings
from ...errors import AIInvocationFailure
from .base import Completion


logger = structlog.get_logger("shapefit")


class OpenAIStylistProvider:
    def __init__(self, api_key: str | None = None, model: str | None = None, client: AsyncOpenAI | None = None) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model or settings.openai_model
        if client is not None:
            self.client: AsyncOpenAI | None = client
        elif self.api_key:
            # retries are the caller's concern; the orchestrator degrades instead
            self.client = AsyncOpenAI(api_key=self.api_key, timeout=settings.ai_timeout_seconds, max_retries=0)
        else:
            self.client = None

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def complete(
        self,
        system_prompt: str,
        task_prompt: str,
        temperature: float,
        max_tokens: int,
        image_refs: Optional[List[str]] = None,
    ) -> Completion:
        if not self.client:
            raise AIInvocationFailure("OPENAI_API_KEY not configured")

        user_content: Any = task_prompt
        if image_refs:
            parts: List[Dict[str, Any]] = [{"type": "text", "text": task_prompt}]
            parts.extend({"type": "image_url", "image_url": {"url": url}} for url in image_refs)
            user_content = parts

        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            raise AIInvocationFailure(f"{type(e).__name__}: {e}") from e

        if not resp.choices:
            raise AIInvocationFailure("provider returned no choices")
        choice = resp.choices[0]
        text = (choice.message.content or "").strip()
        truncated = choice.finish_reason == "length"
        logger.info("ai_completion_received", model=self.model, chars=len(text), finish_reason=choice.finish_reason)
        return Completion(text=text, truncated=truncated)
