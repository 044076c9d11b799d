from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

# Enumerated theme identifiers, in the order they are offered to users
THEME_IDS = ("light", "dark", "midnight", "skywave", "mint", "sunset", "ocean", "forest", "royal")
DEFAULT_THEME = "light"

MAX_BULLETS = 6

class SlideDraft(BaseModel):
    title: str
    content: List[str] = []
    image_prompt: Optional[str] = Field(default=None, alias="imagePrompt")

    model_config = {"populate_by_name": True}

class Outline(BaseModel):
    title: str
    slides: List[SlideDraft]

class OutlineResult(BaseModel):
    """Outcome of validating a provider response: an outline or a reason"""
    ok: bool
    outline: Optional[Outline] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, outline: Outline) -> "OutlineResult":
        return cls(ok=True, outline=outline)

    @classmethod
    def failure(cls, reason: str) -> "OutlineResult":
        return cls(ok=False, reason=reason)

class Slide(SlideDraft):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

class Deck(BaseModel):
    title: str
    theme: str = DEFAULT_THEME
    slides: List[Slide] = []

    model_config = {"populate_by_name": True}

    @field_validator("theme", mode="before")
    @classmethod
    def _known_theme(cls, value):
        if isinstance(value, str) and value.strip().lower() in THEME_IDS:
            return value.strip().lower()
        return DEFAULT_THEME

class AssemblyProgress(BaseModel):
    deck: Deck
    completed: int
    total: int
    progress: int  # 0-100
