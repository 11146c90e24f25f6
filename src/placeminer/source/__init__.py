"""Content source adapters that turn queries into render surfaces."""

from .playwright_source import BrowserSurface, PlaywrightContentSource

__all__ = ["BrowserSurface", "PlaywrightContentSource"]
