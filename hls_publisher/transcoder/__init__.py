"""
Rendition encoding.
"""

from .encoder import RenditionEncoder

__all__ = ["RenditionEncoder"]
