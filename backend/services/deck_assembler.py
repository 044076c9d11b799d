from copy import deepcopy
from typing import Callable, Iterator, MutableSet, Optional, Set
from core.config import settings
from core.logger import get_logger
from services.image_service import image_service
from services.prompt_engine import default_image_prompt
from services.slide_schema import AssemblyProgress, Deck, Outline, Slide
from services.theme_manager import ThemeManager

logger = get_logger("deck_assembler")

ImageResolver = Callable[[str, MutableSet[str]], str]

def progress_percent(completed: int, total: int) -> int:
    if total <= 0:
        return 100
    return round(100 * completed / total)

class DeckAssembler:
    """Turns an outline into a themed deck, attaching one image per slide"""

    def __init__(self, resolver: Optional[ImageResolver] = None, enable_images: Optional[bool] = None):
        self.resolver = resolver or image_service.resolve
        self.enable_images = settings.enable_images if enable_images is None else enable_images

    def iter_assembly(self, outline: Outline, theme: str, topic: Optional[str] = None) -> Iterator[AssemblyProgress]:
        """Yield a deck snapshot before any image and after each slide.

        Each call starts from scratch with its own used-image set, so the
        sequence can be consumed again to assemble a fresh deck. Slides without
        an image prompt get one built from ``topic``, which defaults to the
        outline title.
        """
        deck = Deck(
            title=outline.title,
            theme=ThemeManager.normalize_theme(theme),
            slides=[Slide(**draft.model_dump()) for draft in outline.slides],
        )
        used_images: Set[str] = set()
        total = len(deck.slides)
        yield AssemblyProgress(deck=deepcopy(deck), completed=0, total=total, progress=0)

        for i, slide in enumerate(deck.slides):
            if self.enable_images:
                prompt = slide.image_prompt or default_image_prompt(slide.title, topic or outline.title)
                try:
                    slide.image_url = self.resolver(prompt, used_images)
                except Exception as e:
                    # Slide keeps no image; the rest of the deck still resolves
                    logger.warning(f"Image resolution failed for slide {i + 1} '{slide.title}': {e}")
                    slide.image_url = None
            completed = i + 1
            yield AssemblyProgress(
                deck=deepcopy(deck),
                completed=completed,
                total=total,
                progress=progress_percent(completed, total),
            )

        logger.info(f"Assembled deck '{deck.title}': {sum(1 for s in deck.slides if s.image_url)}/{total} slides have images")

    def assemble(self, outline: Outline, theme: str, topic: Optional[str] = None) -> Deck:
        final = None
        for final in self.iter_assembly(outline, theme, topic):
            pass
        return final.deck
