"""
章节目录模块 - 提供每章经文数量
"""

from .chapters import (
    VERSE_COUNTS,
    CHAPTER_COUNT,
    TOTAL_VERSES,
    get_verse_count,
    get_global_verse_number,
    get_chapter_and_verse
)

__all__ = [
    "VERSE_COUNTS",
    "CHAPTER_COUNT",
    "TOTAL_VERSES",
    "get_verse_count",
    "get_global_verse_number",
    "get_chapter_and_verse"
]
