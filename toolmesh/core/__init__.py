"""Cross-cutting infrastructure: settings and logging configuration."""

from .config import ToolmeshSettings, get_settings

__all__ = [
    "ToolmeshSettings",
    "get_settings",
]
