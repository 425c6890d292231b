"""Content analysis service."""

import logging

from pensive.config import settings
from pensive.schemas.analysis import AnalysisOutput
from pensive.services.ai.base import BaseAIService, build_prompt
from pensive.services.ai.constants import FALLBACK_CONTENT_CHARS, MAX_CONTENT_CHARS
from pensive.services.ai.prompts import PromptRegistry

logger = logging.getLogger(__name__)


class ContentAnalyzer(BaseAIService):
    """Summarize a content item and extract the entities it mentions."""

    def __init__(self, llm=None, model_config=None):
        super().__init__(llm=llm, model_config=model_config)
        self.prompt_info = PromptRegistry.get_analysis_prompt()
        self.prompt = build_prompt(self.prompt_info)
        self.fallback_prompt = build_prompt(PromptRegistry.get_analysis_fallback_prompt())

    async def analyze(
        self,
        title: str,
        content: str,
        url: str = "",
        *,
        timeout_seconds: float | None = None,
    ) -> AnalysisOutput:
        """Analyze one piece of content.

        Args:
            title: Content title
            content: Body text; the title stands in when it is empty
            url: Source URL, if any
            timeout_seconds: Overrides ``ai_analysis_timeout_seconds``

        Returns:
            Validated AnalysisOutput
        """
        text = (content or title or "").strip()
        timeout = float(timeout_seconds or settings.ai_analysis_timeout_seconds)

        result = await self._run_with_fallback(
            label=f"Analysis of '{title[:60]}'",
            prompt=self.prompt,
            variables={"title": title, "url": url or "n/a", "content": text[:MAX_CONTENT_CHARS]},
            fallback_prompt=self.fallback_prompt,
            fallback_variables={"title": title, "content": text[:FALLBACK_CONTENT_CHARS]},
            schema=AnalysisOutput,
            timeout_seconds=timeout,
        )
        logger.debug("Analyzed '%s': %s entities", title[:60], len(result.entities))
        return result
