from typing import Dict, List, Tuple
from pptx.dml.color import RGBColor
from services.slide_schema import THEME_IDS, DEFAULT_THEME

# Dark backgrounds get a panel this much closer to white
PANEL_LIGHTEN = 0.1

class ThemeManager:
    """Manages presentation themes and color schemes"""

    THEMES = {
        "light": {
            "background": "#FFFFFF",  # White
            "text": "#333333",        # Charcoal
            "accent": "#4F46E5",      # Indigo
        },
        "dark": {
            "background": "#1F2937",  # Slate
            "text": "#F9FAFB",        # Off-white
            "accent": "#6366F1",      # Indigo
        },
        "midnight": {
            "background": "#1A1A2E",  # Navy
            "text": "#EEEEEE",        # Light gray
            "accent": "#E94560",      # Crimson
        },
        "skywave": {
            "background": "#ECF3FF",  # Pale blue
            "text": "#334155",        # Slate
            "accent": "#3B82F6",      # Blue
        },
        "mint": {
            "background": "#F0FFF4",  # Mint cream
            "text": "#065F46",        # Deep green
            "accent": "#34D399",      # Emerald
        },
        "sunset": {
            "background": "#FFF7ED",  # Peach
            "text": "#7C2D12",        # Rust
            "accent": "#F97316",      # Orange
        },
        "ocean": {
            "background": "#0C4A6E",  # Deep sea
            "text": "#E0F2FE",        # Foam
            "accent": "#38BDF8",      # Sky
        },
        "forest": {
            "background": "#14532D",  # Pine
            "text": "#F0FDF4",        # Pale green
            "accent": "#A3E635",      # Lime
        },
        "royal": {
            "background": "#2E1065",  # Deep purple
            "text": "#F5F3FF",        # Lavender
            "accent": "#FBBF24",      # Gold
        },
    }

    @staticmethod
    def normalize_theme(theme_name) -> str:
        """Map any input to a known theme id, defaulting to light"""
        if isinstance(theme_name, str):
            key = theme_name.strip().lower()
            if key in ThemeManager.THEMES:
                return key
        return DEFAULT_THEME

    @staticmethod
    def get_theme_colors(theme_name=DEFAULT_THEME) -> Dict[str, str]:
        """Get colors for specified theme"""
        return dict(ThemeManager.THEMES[ThemeManager.normalize_theme(theme_name)])

    @staticmethod
    def list_themes() -> List[Dict[str, str]]:
        return [{"id": theme_id, **ThemeManager.THEMES[theme_id]} for theme_id in THEME_IDS]

    @staticmethod
    def panel_color(theme_name=DEFAULT_THEME) -> str:
        """Fill behind bullet text.

        Light themes use white (a light gray on pure white); dark themes use
        their own background lightened slightly so light text stays legible.
        """
        background = ThemeManager.get_theme_colors(theme_name)["background"]
        if ThemeManager.relative_luminance(background) < 0.5:
            red, green, blue = ThemeManager._channels(background)
            return "#" + "".join(
                f"{round(c + (255 - c) * PANEL_LIGHTEN):02X}" for c in (red, green, blue)
            )
        return "#F8F8F8" if background.upper() == "#FFFFFF" else "#FFFFFF"

    @staticmethod
    def _channels(hex_color: str) -> Tuple[int, int, int]:
        value = hex_color.lstrip("#")
        return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)

    @staticmethod
    def relative_luminance(hex_color: str) -> float:
        """WCAG relative luminance, 0.0 for black to 1.0 for white"""
        linear = []
        for channel in ThemeManager._channels(hex_color):
            c = channel / 255
            linear.append(c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4)
        return 0.2126 * linear[0] + 0.7152 * linear[1] + 0.0722 * linear[2]

    @staticmethod
    def contrast_ratio(first: str, second: str) -> float:
        lighter, darker = sorted(
            (ThemeManager.relative_luminance(first), ThemeManager.relative_luminance(second)), reverse=True
        )
        return (lighter + 0.05) / (darker + 0.05)

    @staticmethod
    def to_rgb(hex_color: str) -> RGBColor:
        return RGBColor.from_string(hex_color.lstrip("#").upper())
