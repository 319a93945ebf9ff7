from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
import re
from typing import Any

import google.generativeai as genai

from .base import AdapterError, TopicDraft

logger = logging.getLogger(__name__)

SERVICE = "gemini"

ANALYZE_PROMPT = """
Analyze the current trending news topics globally and provide a JSON array of the top 10 most trending topics.
For each topic, include:
- title: A catchy, YouTube-friendly title
- description: A brief description suitable for video content
- source: The type of source (e.g., "Tech News", "World News", "Politics")
- score: A trending score from 1-100
- category: Category like "Technology", "Politics", "Science", "Entertainment"
- keywords: Array of relevant keywords for SEO

Focus on topics that would make engaging YouTube videos with high view potential.
Ensure the titles are clickable and the content is suitable for automated video creation.

Return only valid JSON, no other text.
"""

SCRIPT_PROMPT = """
Create an engaging YouTube video script about "{topic}" that is approximately {duration} seconds long.

The script should:
- Start with a compelling hook
- Be informative and engaging
- Include natural pauses for visuals
- Be suitable for Indian English text-to-speech
- Have a clear structure with introduction, main content, and conclusion
- Include call-to-action for likes and subscriptions
- Be factual and well-researched

Format the script with clear paragraphs and natural speaking rhythm.
Avoid complex words that might be difficult for TTS to pronounce correctly.
"""

DESCRIPTION_PROMPT = """
Create a YouTube video description for a video titled "{title}".

The description should:
- Be engaging and SEO-optimized
- Include relevant hashtags
- Be under 5000 characters
- Include a brief summary of the content
- Have a call-to-action

Script excerpt: {excerpt}...
"""

FALLBACK_TOPICS: tuple[TopicDraft, ...] = (
    TopicDraft(
        title="AI Technology Breakthrough in Healthcare",
        description="Latest developments in artificial intelligence revolutionizing medical diagnosis and treatment",
        source="Tech News",
        score=92,
        category="Technology",
        keywords=["AI", "healthcare", "technology", "innovation"],
    ),
    TopicDraft(
        title="Global Climate Summit Announces New Initiatives",
        description="World leaders unite on ambitious climate goals and renewable energy commitments",
        source="World News",
        score=87,
        category="Environment",
        keywords=["climate", "environment", "summit", "renewable energy"],
    ),
    TopicDraft(
        title="Space Exploration: Mars Mission Reveals New Discoveries",
        description="NASA's latest Mars rover uncovers fascinating evidence about the planet's history",
        source="Science News",
        score=84,
        category="Science",
        keywords=["space", "Mars", "NASA", "discovery"],
    ),
)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str
    model: str
    temperature: float
    max_output_tokens: int


def load_gemini_config(overrides: dict[str, Any] | None = None) -> GeminiConfig:
    overrides = overrides or {}
    api_key = (
        overrides.get("apiKey")
        or os.getenv("GEMINI_API_KEY")
        or os.getenv("GOOGLE_AI_KEY")
        or ""
    ).strip()
    model = overrides.get("model") or os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    temperature = float(overrides.get("temperature", os.getenv("GEMINI_TEMPERATURE", "0.7")))
    max_output_tokens = int(overrides.get("maxTokens", os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "2048")))
    return GeminiConfig(
        api_key=api_key,
        model=model,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
    )


def _coerce_topic(item: Any) -> TopicDraft | None:
    if not isinstance(item, dict):
        return None
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        return None
    try:
        score = int(round(float(item.get("score", 0))))
    except (TypeError, ValueError, OverflowError):
        return None
    keywords = item.get("keywords") or []
    if not isinstance(keywords, list):
        keywords = []

    def _opt(key: str) -> str | None:
        value = item.get(key)
        return value.strip() if isinstance(value, str) and value.strip() else None

    return TopicDraft(
        title=title.strip(),
        score=max(1, min(score, 100)),
        description=_opt("description"),
        source=_opt("source"),
        category=_opt("category"),
        url=_opt("url"),
        keywords=[str(k) for k in keywords if str(k).strip()],
    )


def parse_topics(text: str) -> list[TopicDraft]:
    """Parse model output into topics; raises ValueError when nothing usable is found."""
    cleaned = _FENCE.sub("", text.strip())
    data = json.loads(cleaned)
    if isinstance(data, dict):
        data = data.get("topics")
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of topics")
    topics = [topic for topic in (_coerce_topic(item) for item in data) if topic is not None]
    if not topics:
        raise ValueError("no valid topics in response")
    return topics


class GeminiTextGenerator:
    def __init__(self, config: GeminiConfig, model: Any | None = None) -> None:
        self.config = config
        self._model = model

    def _client(self) -> Any:
        if self._model is None:
            if not self.config.api_key:
                raise AdapterError(SERVICE, "GEMINI_API_KEY is not set")
            genai.configure(api_key=self.config.api_key)
            self._model = genai.GenerativeModel(self.config.model)
        return self._model

    def _generate(self, prompt: str) -> str:
        try:
            response = self._client().generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=self.config.temperature,
                    candidate_count=1,
                    max_output_tokens=self.config.max_output_tokens,
                ),
            )
            text = response.text
        except AdapterError:
            raise
        except Exception as exc:
            raise AdapterError(SERVICE, f"generation failed: {exc}") from exc
        if not text or not text.strip():
            raise AdapterError(SERVICE, "empty response")
        return text.strip()

    def analyze_trending_topics(self) -> list[TopicDraft]:
        try:
            text = self._generate(ANALYZE_PROMPT)
        except AdapterError as exc:
            logger.warning("Topic analysis failed, using fallback topics: %s", exc)
            return list(FALLBACK_TOPICS)
        try:
            return parse_topics(text)
        except ValueError as exc:
            logger.warning("Unparsable topic analysis response, using fallback topics: %s", exc)
            return list(FALLBACK_TOPICS)

    def generate_script(self, topic: str, duration_s: int = 300) -> str:
        return self._generate(SCRIPT_PROMPT.format(topic=topic, duration=duration_s))

    def generate_description(self, title: str, script: str) -> str:
        return self._generate(DESCRIPTION_PROMPT.format(title=title, excerpt=script[:500]))

    def check_health(self) -> bool:
        try:
            text = self._generate("Health check: respond with 'OK'")
        except AdapterError:
            return False
        return text.strip().strip(".!'\"").lower() == "ok"
