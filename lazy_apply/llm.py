"""Narrow capability interfaces for the model handle passed to apply_code_block."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable

# Set by the caller to cancel a streaming apply
AbortSignal = asyncio.Event


@runtime_checkable
class LLMHandle(Protocol):
    """All the orchestrator needs: the provider name for the full-file guard."""

    provider: str


@runtime_checkable
class StreamingLLM(Protocol):
    provider: str
    model: str

    def stream_chat(
        self,
        messages: List[Dict[str, str]],
        abort_signal: Optional[AbortSignal] = None,
    ) -> AsyncIterator[str]:
        ...


class ProviderHandle:
    """An LLMHandle that only names its provider."""

    def __init__(self, provider: str, model: str = ""):
        self.provider = provider
        self.model = model

    def __repr__(self) -> str:
        return f"ProviderHandle(provider={self.provider!r}, model={self.model!r})"
