"""
章节目录 - 每章经文数量及全局经文编号换算

章节文本和译文的获取不在本项目范围内，这里只提供序列器需要的经文数量。
"""

from typing import List, Tuple

# 114 章的经文数量
VERSE_COUNTS: List[int] = [
    7, 286, 200, 176, 120, 165, 206, 75, 129, 109, 123, 111, 43, 52, 99, 128,
    111, 110, 98, 135, 112, 78, 118, 64, 77, 227, 93, 88, 69, 60, 34, 30, 73,
    54, 45, 83, 182, 88, 75, 85, 54, 53, 89, 59, 37, 35, 38, 29, 18, 45, 60,
    49, 62, 55, 78, 96, 29, 22, 24, 13, 14, 11, 11, 18, 12, 12, 30, 52, 52,
    44, 28, 28, 20, 56, 40, 31, 50, 40, 46, 42, 29, 19, 36, 25, 22, 17, 19,
    26, 30, 20, 15, 21, 11, 8, 8, 19, 5, 8, 8, 11, 11, 8, 3, 9, 5, 4, 7, 3,
    6, 3, 5, 4, 5, 6
]

CHAPTER_COUNT = len(VERSE_COUNTS)
TOTAL_VERSES = sum(VERSE_COUNTS)


def get_verse_count(chapter: int) -> int:
    """
    获取章节的经文数量

    Args:
        chapter: 章节号（1-114）

    Returns:
        经文数量

    Raises:
        ValueError: 章节号无效
    """
    if not 1 <= chapter <= CHAPTER_COUNT:
        raise ValueError(f"无效的章节号: {chapter}")
    return VERSE_COUNTS[chapter - 1]


def get_global_verse_number(chapter: int, verse: int) -> int:
    """
    计算全局经文编号

    Args:
        chapter: 章节号
        verse: 章内经文号

    Returns:
        从1开始的全局经文编号

    Raises:
        ValueError: 章节号或经文号无效
    """
    if not 1 <= verse <= get_verse_count(chapter):
        raise ValueError(f"章节 {chapter} 中没有经文 {verse}")
    return sum(VERSE_COUNTS[:chapter - 1]) + verse


def get_chapter_and_verse(global_number: int) -> Tuple[int, int]:
    """
    把全局经文编号换算为 (章节, 经文)

    Args:
        global_number: 全局经文编号

    Returns:
        (章节号, 章内经文号)

    Raises:
        ValueError: 编号超出范围
    """
    if not 1 <= global_number <= TOTAL_VERSES:
        raise ValueError(f"无效的全局经文编号: {global_number}")

    remaining = global_number
    for index, count in enumerate(VERSE_COUNTS):
        if remaining <= count:
            return index + 1, remaining
        remaining -= count

    raise ValueError(f"无效的全局经文编号: {global_number}")
