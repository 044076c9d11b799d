import json
import re
from typing import Any, Optional
from langchain_core.prompts import PromptTemplate
from core.config import settings
from core.errors import FormatError, GenerationError
from core.logger import get_logger
from services.slide_schema import MAX_BULLETS, Outline, OutlineResult, SlideDraft

logger = get_logger("prompt_engine")

OUTLINE_TEMPLATE = """
You are an expert presentation writer. Create a professional presentation about "{topic}" with exactly {slide_count} slides.

Structure each slide with:
1. A clear, concise title
2. 4-6 bullet points of relevant content, each no longer than 20 words
3. An "imagePrompt": a short description of an image that would work well with the slide content

Include data points that could be visualized in charts (every 4th slide should have numerical data that could be shown in a chart).

Return strict JSON only, with this structure:
{{
  "title": "Main Presentation Title",
  "slides": [
    {{
      "title": "Slide 1 Title",
      "content": ["Bullet point 1", "Bullet point 2", "Bullet point 3", "Bullet point 4"],
      "imagePrompt": "Description for image generation"
    }}
  ]
}}

Don't include any explanations or markdown formatting, just return the JSON.
"""

DEFAULT_IMAGE_PROMPT = "High quality professional presentation image about {slide_title} related to {topic}"

_FENCE_RE = re.compile(r"^\s*```(?:json)?[ \t]*\r?\n?(.*?)\r?\n?```\s*$", re.DOTALL | re.IGNORECASE)

def strip_code_fence(raw_text: str) -> str:
    """Return the interior of a fenced code block, or the text unchanged"""
    match = _FENCE_RE.match(raw_text or "")
    if match:
        return match.group(1)
    return raw_text

def default_image_prompt(slide_title: str, topic: str) -> str:
    return DEFAULT_IMAGE_PROMPT.format(slide_title=slide_title, topic=topic)

def _repair_slide(raw_slide: Any, topic: str) -> SlideDraft:
    if not isinstance(raw_slide, dict):
        raw_slide = {}
    title = raw_slide.get("title")
    title = title if isinstance(title, str) else ("" if title is None else str(title))

    content = raw_slide.get("content")
    if not isinstance(content, (list, tuple)):
        content = []
    bullets = [item if isinstance(item, str) else str(item) for item in content[:MAX_BULLETS]]

    image_prompt = raw_slide.get("imagePrompt")
    if not isinstance(image_prompt, str) or not image_prompt.strip():
        image_prompt = default_image_prompt(title, topic)

    return SlideDraft(title=title, content=bullets, image_prompt=image_prompt)

def validate_outline(data: Any, topic: str, slide_count: Optional[int] = None) -> OutlineResult:
    """Check the decoded JSON against the outline shape and repair slide entries"""
    if not isinstance(data, dict):
        return OutlineResult.failure("response is not a JSON object")
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return OutlineResult.failure("missing or empty 'title'")
    slides = data.get("slides")
    if not isinstance(slides, list):
        return OutlineResult.failure("'slides' is not a list")
    if slide_count is not None and len(slides) != slide_count:
        return OutlineResult.failure(f"expected {slide_count} slides, got {len(slides)}")

    drafts = [_repair_slide(raw_slide, topic) for raw_slide in slides]
    return OutlineResult.success(Outline(title=title, slides=drafts))

def parse_outline_text(raw_text: str, topic: str, slide_count: Optional[int] = None) -> OutlineResult:
    text = strip_code_fence(raw_text)
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        return OutlineResult.failure(f"invalid JSON: {e}")
    return validate_outline(data, topic, slide_count)

FALLBACK_TOPIC = "India: A Cultural and Historical Journey"
FALLBACK_SECTIONS = (
    "Introduction to India",
    "Rich Cultural Heritage",
    "Historical Timeline",
    "Geographical Diversity",
    "Economic Growth",
    "Indian Cuisine",
    "Art and Architecture",
    "Modern India",
    "Global Influence",
    "Future Prospects",
)

def fallback_outline(topic: str, slide_count: int) -> Outline:
    """Deterministic outline used when the provider is not available"""
    presentation_topic = topic.strip() if topic and topic.strip() else FALLBACK_TOPIC
    slides = []
    for i in range(slide_count):
        section = FALLBACK_SECTIONS[i % len(FALLBACK_SECTIONS)]
        slides.append(SlideDraft(
            title=FALLBACK_SECTIONS[i] if i < len(FALLBACK_SECTIONS) else f"Aspect of India {i + 1}",
            content=[f"{presentation_topic} point {n}" for n in range(1, 4)],
            image_prompt=f"Image related to {presentation_topic} - {section}",
        ))
    return Outline(title=f"Presentation on {presentation_topic}", slides=slides)

class PromptEngine:
    """Requests a slide outline from Gemini and turns the answer into an Outline"""

    def __init__(self, llm=None, offline: Optional[bool] = None):
        self.model = settings.gemini_model
        self.temperature = settings.gemini_temperature
        self.timeout = settings.generation_timeout
        self.offline = settings.offline_mode if offline is None else offline
        self._llm = llm
        self.prompt_template = PromptTemplate(
            template=OUTLINE_TEMPLATE,
            input_variables=["topic", "slide_count"],
        )

    @property
    def llm(self):
        if self._llm is None:
            from langchain_google_genai import ChatGoogleGenerativeAI
            self._llm = ChatGoogleGenerativeAI(
                model=self.model,
                google_api_key=settings.gemini_api_key,
                temperature=self.temperature,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._llm

    def build_prompt(self, topic: str, slide_count: int) -> str:
        return self.prompt_template.format(topic=topic, slide_count=slide_count)

    def _call_llm(self, prompt: str) -> str:
        try:
            response = self.llm.invoke(prompt)
        except Exception as e:
            logger.error(f"Gemini request failed: {e}")
            raise GenerationError(f"Text generation failed: {e}") from e
        content = getattr(response, "content", response)
        if isinstance(content, list):
            # Multi-part messages come back as a list of text chunks
            content = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
        return content if isinstance(content, str) else str(content)

    def request(self, topic: str, slide_count: int) -> Outline:
        """Fetch and validate an outline; raises GenerationError or FormatError"""
        if self.offline:
            logger.info(f"Offline mode: building fallback outline for '{topic}' ({slide_count} slides)")
            return fallback_outline(topic, slide_count)

        logger.info(f"Calling Gemini for topic: {topic} ({slide_count} slides)")
        raw_text = self._call_llm(self.build_prompt(topic, slide_count))

        result = parse_outline_text(raw_text, topic, slide_count)
        if not result.ok:
            logger.error(f"Gemini response did not match the outline format: {result.reason}")
            logger.debug(f"Raw response: {raw_text[:500]}")
            raise FormatError(f"Invalid outline from provider: {result.reason}")

        logger.info(f"Outline ready: '{result.outline.title}' with {len(result.outline.slides)} slides")
        return result.outline
