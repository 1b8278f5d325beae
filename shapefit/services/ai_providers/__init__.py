from .base import Completion, StylistProvider
from .openai_provider import OpenAIStylistProvider


def get_provider(name: str) -> StylistProvider | None:
    name = (name or "openai").lower()
    if name in ("none", "disabled", "off"):
        return None
    return OpenAIStylistProvider()


__all__ = ["Completion", "StylistProvider", "OpenAIStylistProvider", "get_provider"]
