"""Review views of alignment rows."""

from .view_renderer import ViewRenderer, badge_title, indicator, is_bidi

__all__ = ["ViewRenderer", "badge_title", "indicator", "is_bidi"]
