import re
import requests
from io import BytesIO
from typing import Dict, List, Optional
from pptx import Presentation
from pptx.chart.data import CategoryChartData
from pptx.enum.chart import XL_CHART_TYPE
from pptx.enum.shapes import MSO_CONNECTOR, MSO_SHAPE
from pptx.enum.text import PP_ALIGN, MSO_ANCHOR
from pptx.util import Pt, Inches
from PIL import Image
from core.config import settings
from core.errors import ExportError
from core.logger import get_logger
from services.layout_intelligence import LayoutKind, SlidePlan, layout_selector
from services.slide_schema import Deck
from services.theme_manager import ThemeManager

logger = get_logger("ppt_builder")

SLIDE_WIDTH = Inches(13.333)
SLIDE_HEIGHT = Inches(7.5)
BLANK_LAYOUT = 6
FONT_FACE = "Arial"
FILENAME_SUFFIX = "_Presentation.pptx"
PPTX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

def export_filename(title: str) -> str:
    """'Renewable Energy 101' -> 'Renewable_Energy_101_Presentation.pptx'"""
    return re.sub(r"\s+", "_", title or "") + FILENAME_SUFFIX

class PPTBuilder:
    def __init__(self, theme: str = "light", branding: Optional[str] = None):
        self.theme = ThemeManager.normalize_theme(theme)
        theme_data = ThemeManager.get_theme_colors(self.theme)
        self.colors = {
            'background': ThemeManager.to_rgb(theme_data['background']),
            'text': ThemeManager.to_rgb(theme_data['text']),
            'accent': ThemeManager.to_rgb(theme_data['accent']),
            'panel': ThemeManager.to_rgb(ThemeManager.panel_color(self.theme)),
            'placeholder': ThemeManager.to_rgb("#F8F9FA"),
            'placeholder_line': ThemeManager.to_rgb("#CED4DA"),
            'placeholder_text': ThemeManager.to_rgb("#6C757D"),
        }
        self.branding = settings.branding_label if branding is None else branding
        self._image_cache: Dict[str, Optional[bytes]] = {}

    def build(self, deck: Deck) -> BytesIO:
        """Render the deck plus a closing slide and return the .pptx bytes"""
        try:
            logger.info(f"Building PPTX '{deck.title}' with theme '{self.theme}', slides={len(deck.slides)}")
            prs = Presentation()
            prs.slide_width = SLIDE_WIDTH
            prs.slide_height = SLIDE_HEIGHT
            prs.core_properties.title = deck.title

            for plan in layout_selector.preview(deck):
                logger.debug(f"Rendering slide {plan.index + 1}: {plan.title} (layout={plan.layout.name}, chart={plan.is_chart})")
                self._create_slide(prs, plan)

            self._create_closing_slide(prs)

            pptx_stream = BytesIO()
            prs.save(pptx_stream)
            pptx_stream.seek(0)
            logger.info(f"PPTX generated in memory ({len(prs.slides)} slides)")
            return pptx_stream
        except Exception as e:
            logger.error(f"Failed to build PPTX: {e}")
            raise ExportError(f"Failed to build presentation file: {e}") from e
        finally:
            self._image_cache.clear()

    def _new_slide(self, prs):
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])
        background = slide.background.fill
        background.solid()
        background.fore_color.rgb = self.colors['background']
        return slide

    def _create_slide(self, prs, plan: SlidePlan):
        slide = self._new_slide(prs)
        self._add_branding(slide)
        self._add_title(slide, plan.title)

        if plan.is_chart:
            self._add_chart(slide, plan)
        elif plan.layout == LayoutKind.TWO_COLUMN:
            self._create_two_column_layout(slide, plan)
        elif plan.layout == LayoutKind.NUMBERED:
            self._create_numbered_layout(slide, plan)
        else:
            self._create_image_content_layout(slide, plan)

        self._add_footer(slide, plan.page_label)
        return slide

    def _add_text(self, slide, text, left, top, width, height, size=20, bold=False,
                  color=None, align=PP_ALIGN.LEFT):
        box = slide.shapes.add_textbox(left, top, width, height)
        tf = box.text_frame
        tf.word_wrap = True
        tf.text = text
        for paragraph in tf.paragraphs:
            paragraph.alignment = align
            paragraph.font.size = Pt(size)
            paragraph.font.bold = bold
            paragraph.font.name = FONT_FACE
            paragraph.font.color.rgb = color or self.colors['text']
        return box

    def _add_branding(self, slide):
        self._add_text(slide, self.branding, Inches(0.3), Inches(0.1), Inches(3), Inches(0.4),
                       size=14, bold=True)

    def _add_title(self, slide, title: str):
        self._add_text(slide, title, Inches(0.5), Inches(0.5), Inches(12.3), Inches(0.9),
                       size=36, bold=True, color=self.colors['accent'])
        line = slide.shapes.add_connector(MSO_CONNECTOR.STRAIGHT, Inches(0.5), Inches(1.4),
                                          Inches(12.8), Inches(1.4))
        line.line.color.rgb = self.colors['accent']
        line.line.width = Pt(2)

    def _add_footer(self, slide, page_label: str):
        self._add_text(slide, page_label, Inches(11.0), Inches(6.9), Inches(2.0), Inches(0.4),
                       size=12, align=PP_ALIGN.RIGHT)

    def _add_panel(self, slide, left, top, width, height, border=False):
        panel = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, left, top, width, height)
        panel.fill.solid()
        panel.fill.fore_color.rgb = self.colors['panel']
        if border:
            panel.line.color.rgb = self.colors['accent']
            panel.line.width = Pt(2)
        else:
            panel.line.fill.background()
        panel.shadow.inherit = False
        return panel

    def _add_bullets(self, slide, bullets: List[str], left, top, width, height, size=20, marker="• "):
        if not bullets:
            return None
        box = slide.shapes.add_textbox(left, top, width, height)
        tf = box.text_frame
        tf.word_wrap = True
        for i, bullet in enumerate(bullets):
            p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
            p.text = f"{marker}{bullet}"
            p.font.size = Pt(size)
            p.font.name = FONT_FACE
            p.font.color.rgb = self.colors['text']
            p.space_after = Pt(8)
        return box

    def _create_image_content_layout(self, slide, plan: SlidePlan):
        """Single bullet column, image panel on the right"""
        width = Inches(7.2) if plan.image_url else Inches(12.3)
        if plan.bullets:
            self._add_panel(slide, Inches(0.4), Inches(1.6), width, Inches(4.9))
            self._add_bullets(slide, plan.bullets, Inches(0.5), Inches(1.7), width - Inches(0.2), Inches(4.7))
        if plan.image_url:
            self._add_image_to_slide(slide, plan.image_url, Inches(8.0), Inches(1.7), Inches(4.8), Inches(3.6))

    def _create_two_column_layout(self, slide, plan: SlidePlan):
        """Bullets split over two columns, image centered below"""
        columns_height = Inches(2.9) if plan.image_url else Inches(4.9)
        self._add_bullets(slide, plan.left_bullets, Inches(0.5), Inches(1.7), Inches(6.0), columns_height, size=18)
        self._add_bullets(slide, plan.right_bullets, Inches(6.8), Inches(1.7), Inches(6.0), columns_height, size=18)
        if plan.image_url:
            self._add_image_to_slide(slide, plan.image_url, Inches(4.67), Inches(4.7), Inches(4.0), Inches(2.1))

    def _create_numbered_layout(self, slide, plan: SlidePlan):
        """Numbered bullets in a bordered panel, framed image on the right"""
        width = Inches(7.2) if plan.image_url else Inches(12.3)
        if plan.bullets:
            self._add_panel(slide, Inches(0.4), Inches(1.6), width, Inches(4.9), border=True)
            self._add_bullets(slide, plan.bullets, Inches(0.6), Inches(1.8), width - Inches(0.4), Inches(4.5), marker="")
        if plan.image_url:
            left, top, img_width, img_height = Inches(8.0), Inches(1.8), Inches(4.6), Inches(3.4)
            frame = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, left + Inches(0.15), top + Inches(0.15),
                                           img_width, img_height)
            frame.fill.solid()
            frame.fill.fore_color.rgb = self.colors['accent']
            frame.line.fill.background()
            self._add_image_to_slide(slide, plan.image_url, left, top, img_width, img_height)

    def _add_chart(self, slide, plan: SlidePlan):
        chart_data = CategoryChartData()
        chart_data.categories = plan.chart.categories
        chart_data.add_series(plan.chart.title, plan.chart.values)
        chart = slide.shapes.add_chart(
            XL_CHART_TYPE.COLUMN_CLUSTERED, Inches(1.5), Inches(1.7), Inches(10.3), Inches(4.9), chart_data
        ).chart
        chart.has_legend = False
        chart.plots[0].series[0].format.fill.solid()
        chart.plots[0].series[0].format.fill.fore_color.rgb = self.colors['accent']
        chart.font.size = Pt(14)
        chart.font.color.rgb = self.colors['text']

    def _create_closing_slide(self, prs):
        slide = self._new_slide(prs)
        self._add_text(slide, "Thank You!", Inches(0.5), Inches(2.8), Inches(12.3), Inches(1.4),
                       size=60, bold=True, color=self.colors['accent'], align=PP_ALIGN.CENTER)
        return slide

    def _fetch_image(self, image_url: str) -> Optional[bytes]:
        """Download an image and re-encode it as PNG; None when unusable"""
        if image_url in self._image_cache:
            return self._image_cache[image_url]
        data = None
        try:
            response = requests.get(image_url, timeout=settings.image_download_timeout)
            response.raise_for_status()
            with Image.open(BytesIO(response.content)) as img:
                buf = BytesIO()
                img.convert("RGB").save(buf, format="PNG")
                data = buf.getvalue()
        except (requests.exceptions.RequestException, OSError, Image.DecompressionBombError) as e:
            logger.warning(f"Failed to fetch image {image_url}: {e}")
        self._image_cache[image_url] = data
        return data

    def _add_image_to_slide(self, slide, image_url, left, top, width, height):
        # Keep the picture on the slide
        if left + width > SLIDE_WIDTH:
            width = SLIDE_WIDTH - left - Inches(0.1)
        if top + height > SLIDE_HEIGHT:
            height = SLIDE_HEIGHT - top - Inches(0.1)

        data = self._fetch_image(image_url)
        if data is None:
            return self._add_image_placeholder(slide, left, top, width, height)
        return slide.shapes.add_picture(BytesIO(data), left, top, width, height)

    def _add_image_placeholder(self, slide, left, top, width, height):
        """Add image placeholder when image fails to load"""
        shape = slide.shapes.add_shape(MSO_SHAPE.RECTANGLE, left, top, width, height)
        shape.fill.solid()
        shape.fill.fore_color.rgb = self.colors['placeholder']
        shape.line.color.rgb = self.colors['placeholder_line']
        shape.line.width = Pt(1.5)

        text_frame = shape.text_frame
        text_frame.text = "Image Placeholder"
        text_frame.vertical_anchor = MSO_ANCHOR.MIDDLE
        paragraph = text_frame.paragraphs[0]
        paragraph.alignment = PP_ALIGN.CENTER
        paragraph.font.size = Pt(14)
        paragraph.font.color.rgb = self.colors['placeholder_text']
        return shape
