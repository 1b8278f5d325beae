from typing import List, Optional, Protocol
from pydantic import BaseModel


class Completion(BaseModel):
    text: str
    # provider stopped because the token budget ran out
    truncated: bool = False


class StylistProvider(Protocol):
    @property
    def configured(self) -> bool:
        ...

    async def complete(
        self,
        system_prompt: str,
        task_prompt: str,
        temperature: float,
        max_tokens: int,
        image_refs: Optional[List[str]] = None,
    ) -> Completion:
        ...
