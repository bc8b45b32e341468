"""
Content for the noir engine.

Pre-built cartridges for playing and testing.
"""

from src.content.noir_chapter import CHAPTER_CAFE, CHAPTER_SITE, create_noir_cartridge

__all__ = [
    "CHAPTER_CAFE",
    "CHAPTER_SITE",
    "create_noir_cartridge",
]
