"""Digest writing service."""

from dataclasses import dataclass
from typing import List

from pensive.config import settings
from pensive.models.digest import DigestTimeframe
from pensive.schemas.analysis import DigestOutput
from pensive.services.ai.base import BaseAIService, build_prompt
from pensive.services.ai.constants import DIGEST_SUMMARY_CHARS
from pensive.services.ai.prompts import PromptRegistry


@dataclass(frozen=True)
class DigestItem:
    """One selected content item as the digest writer sees it."""

    content_id: int
    title: str
    url: str
    summary: str


def format_digest_items(items: List[DigestItem], summary_chars: int = DIGEST_SUMMARY_CHARS) -> str:
    blocks = []
    for item in items:
        lines = [f"(id:{item.content_id}) {item.title}"]
        if item.url:
            lines.append(f"URL: {item.url}")
        if item.summary:
            lines.append(f"Summary: {item.summary[:summary_chars]}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class DigestWriter(BaseAIService):
    """Turn a window of analyzed content into a digest title and body."""

    def __init__(self, llm=None, model_config=None):
        super().__init__(llm=llm, model_config=model_config)
        self.prompt = build_prompt(PromptRegistry.get_digest_prompt())
        self.fallback_prompt = build_prompt(PromptRegistry.get_digest_fallback_prompt())

    async def write_digest(
        self,
        timeframe: DigestTimeframe,
        items: List[DigestItem],
        *,
        timeout_seconds: float | None = None,
    ) -> DigestOutput:
        timeout = float(timeout_seconds or settings.ai_digest_timeout_seconds)
        timeframe = DigestTimeframe(timeframe)

        return await self._run_with_fallback(
            label=f"{timeframe.value.capitalize()} digest",
            prompt=self.prompt,
            variables={
                "timeframe": timeframe.value,
                "num_items": len(items),
                "content_items": format_digest_items(items),
            },
            fallback_prompt=self.fallback_prompt,
            fallback_variables={
                "timeframe": timeframe.value,
                "num_items": len(items),
                "content_items": format_digest_items(items, summary_chars=200),
            },
            schema=DigestOutput,
            timeout_seconds=timeout,
        )
