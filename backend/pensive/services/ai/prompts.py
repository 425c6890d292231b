"""Prompt templates with versioning for AI services."""

from typing import Dict, Any


class PromptRegistry:
    """Centralized prompt management with versioning."""

    ANALYSIS_V1 = {
        "name": "content_analysis",
        "version": "v1.0",
        "created": "2026-10-01",
        "system": "You are an expert reader who distills articles and podcast notes for a personal knowledge base.",
        "template": """Analyze the content below for a reader who saves material to revisit later.

Guidelines:
1. Short summary: one or two sentences, at most 300 characters
2. Paragraph summary: one paragraph with the main argument, evidence and conclusion
3. Entities: the people, organizations, technologies, places, events and ideas the content is about
   - Use the canonical name (e.g. "OpenAI", not "openai inc.")
   - Type is one of: person, organization, technology, place, event, concept
   - Return at most 15 entities, most central first
4. Tags: 3-8 short lowercase topic tags
5. Priority: "skim" for news and short updates, "read" for substantive pieces,
   "deep-dive" for dense long-form material worth studying
6. Confidence: 0.0-1.0, how well the available text supports your analysis

Content to analyze:
Title: {title}
URL: {url}
Content: {content}

Output Format:
Return JSON with this exact structure:
{{
  "summary": {{"short": "...", "paragraph": "..."}},
  "entities": [{{"name": "...", "type": "concept"}}],
  "tags": ["tag1", "tag2"],
  "priority": "skim|read|deep-dive",
  "confidence": 0.8
}}"""
    }

    ANALYSIS_FALLBACK_V1 = {
        "name": "content_analysis_fallback",
        "version": "v1.0",
        "created": "2026-10-01",
        "system": "You are a content summarizer. Answer with JSON only.",
        "template": """Summarize this content in JSON format:

Title: {title}
Content: {content}

Return JSON:
{{
  "summary": {{"short": "one sentence", "paragraph": "one short paragraph"}},
  "entities": [{{"name": "main subject", "type": "concept"}}],
  "tags": ["tag"],
  "priority": "read",
  "confidence": 0.5
}}"""
    }

    DIGEST_V1 = {
        "name": "digest_synthesis",
        "version": "v1.0",
        "created": "2026-10-01",
        "system": "You are an editor writing a personal reading digest.",
        "template": """Write a {timeframe} digest of what this reader saved during the period.

CONTENT ITEMS ({num_items} total, newest first):
{content_items}

Guidelines:
1. Title: short and specific to this period's material, at most 80 characters
2. Body: Markdown, 3-6 short sections grouping related items by theme
   - Open with two sentences on the period as a whole
   - Mention items by title and link them with their URL
   - Point out connections and contrasts between items
   - Close with one or two items worth revisiting
3. Only reference items from the list above; do not invent sources

Output Format:
Return JSON with this exact structure:
{{
  "title": "...",
  "body": "Markdown digest"
}}"""
    }

    DIGEST_FALLBACK_V1 = {
        "name": "digest_synthesis_fallback",
        "version": "v1.0",
        "created": "2026-10-01",
        "system": "You are a concise editor. Answer with JSON only.",
        "template": """List the key points of these {num_items} saved items as a short {timeframe} digest.

{content_items}

Return JSON:
{{
  "title": "Your {timeframe} digest",
  "body": "- point one\\n- point two"
}}"""
    }

    @classmethod
    def get_prompt(cls, prompt_name: str, version: str = "v1.0") -> Dict[str, Any]:
        """Get prompt by name and version."""
        for prompt in (
            cls.ANALYSIS_V1,
            cls.ANALYSIS_FALLBACK_V1,
            cls.DIGEST_V1,
            cls.DIGEST_FALLBACK_V1,
        ):
            if prompt["name"] == prompt_name and prompt["version"] == version:
                return prompt

        raise ValueError(f"Unknown prompt: {prompt_name} version {version}")

    @classmethod
    def get_analysis_prompt(cls) -> Dict[str, Any]:
        """Get the current content analysis prompt."""
        return cls.ANALYSIS_V1

    @classmethod
    def get_analysis_fallback_prompt(cls) -> Dict[str, Any]:
        return cls.ANALYSIS_FALLBACK_V1

    @classmethod
    def get_digest_prompt(cls) -> Dict[str, Any]:
        """Get the current digest synthesis prompt."""
        return cls.DIGEST_V1

    @classmethod
    def get_digest_fallback_prompt(cls) -> Dict[str, Any]:
        return cls.DIGEST_FALLBACK_V1
