from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel
from services.slide_schema import Deck, Slide
from core.logger import get_logger

logger = get_logger("layout_intelligence")

LAYOUT_CYCLE = 3
CHART_INTERVAL = 4
CHART_MIN_BULLETS = 3

# Illustrative figures shown on every chart slide
CHART_TITLE = "Growth"
CHART_CATEGORIES = ("Q1", "Q2", "Q3", "Q4")
CHART_VALUES = (25, 40, 65, 85)

class LayoutKind(IntEnum):
    CONTENT_IMAGE_RIGHT = 0  # single column, image panel on the right
    TWO_COLUMN = 1           # bullets split in two columns, image centered below
    NUMBERED = 2             # numbered bullets in a bordered panel, framed image

IMAGE_POSITIONS = {
    LayoutKind.CONTENT_IMAGE_RIGHT: "right",
    LayoutKind.TWO_COLUMN: "center",
    LayoutKind.NUMBERED: "framed",
}

class ChartData(BaseModel):
    title: str = CHART_TITLE
    categories: List[str] = list(CHART_CATEGORIES)
    values: List[float] = list(CHART_VALUES)

class SlidePlan(BaseModel):
    """Everything a renderer needs to draw one slide the same way everywhere"""
    index: int
    page_label: str
    title: str
    layout: LayoutKind
    is_chart: bool = False
    bullets: List[str] = []
    left_bullets: List[str] = []
    right_bullets: List[str] = []
    image_url: Optional[str] = None
    image_position: Optional[str] = None
    chart: Optional[ChartData] = None

class LayoutSelector:
    """Deterministic layout rules keyed off the slide index"""

    @staticmethod
    def layout_for(slide_index: int) -> LayoutKind:
        return LayoutKind(slide_index % LAYOUT_CYCLE)

    @staticmethod
    def is_chart_slide(slide_index: int, bullet_count: int) -> bool:
        return slide_index > 0 and slide_index % CHART_INTERVAL == 0 and bullet_count >= CHART_MIN_BULLETS

    @staticmethod
    def split_columns(bullets: List[str]) -> Tuple[List[str], List[str]]:
        """First half (rounded up) on the left, remainder on the right"""
        midpoint = (len(bullets) + 1) // 2
        return list(bullets[:midpoint]), list(bullets[midpoint:])

    @staticmethod
    def number_bullets(bullets: List[str]) -> List[str]:
        return [f"{i}. {bullet}" for i, bullet in enumerate(bullets, start=1)]

    @staticmethod
    def page_label(slide_index: int, total: int) -> str:
        return f"page {slide_index + 1} / {total}"

    def plan(self, slide_index: int, slide: Slide, total: int) -> SlidePlan:
        bullets = list(slide.content or [])
        layout = self.layout_for(slide_index)
        plan = SlidePlan(
            index=slide_index,
            page_label=self.page_label(slide_index, total),
            title=slide.title,
            layout=layout,
            image_url=slide.image_url,
        )

        if self.is_chart_slide(slide_index, len(bullets)):
            plan.is_chart = True
            plan.chart = ChartData()
            return plan

        if layout == LayoutKind.TWO_COLUMN:
            plan.left_bullets, plan.right_bullets = self.split_columns(bullets)
            plan.bullets = bullets
        elif layout == LayoutKind.NUMBERED:
            plan.bullets = self.number_bullets(bullets)
        else:
            plan.bullets = bullets

        if slide.image_url:
            plan.image_position = IMAGE_POSITIONS[layout]
        return plan

    def preview(self, deck: Deck) -> List[SlidePlan]:
        """Plans for every slide of the deck, in presentation order"""
        total = len(deck.slides)
        plans = [self.plan(i, slide, total) for i, slide in enumerate(deck.slides)]
        logger.debug(f"Planned {total} slides ({sum(1 for p in plans if p.is_chart)} chart slides)")
        return plans

    def describe(self, deck: Deck) -> List[Dict[str, Any]]:
        return [plan.model_dump(mode="json") for plan in self.preview(deck)]

layout_selector = LayoutSelector()
