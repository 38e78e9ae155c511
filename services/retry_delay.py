"""
重试延迟解析

解析远程错误中 RetryInfo 的 retryDelay 字符串（如 "52s"、"52.88s"），
并格式化为可读的等待时间。
"""

import math
import re
from typing import Optional, Tuple

_DELAY_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)s\s*$")


def parse_retry_delay(value) -> Optional[float]:
    """
    解析 "<小数>s" 格式的延迟

    Returns:
        Optional[float]: 秒数；格式不合法时返回 None（视为没有重试提示）
    """
    if not isinstance(value, str):
        return None

    match = _DELAY_PATTERN.match(value)
    if match is None:
        return None

    return float(match.group(1))


def split_wait(seconds: float) -> Tuple[int, int]:
    """拆分为 (整分钟数, 向上取整的剩余秒数)"""
    minutes = math.floor(seconds / 60)
    remaining = math.ceil(seconds % 60)
    return minutes, remaining


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_wait(seconds: float) -> str:
    """
    格式化等待时间

    >>> format_wait(125)
    '2 minutes and 5 seconds'
    >>> format_wait(45)
    '45 seconds'
    """
    minutes, remaining = split_wait(seconds)

    if minutes > 0:
        text = _plural(minutes, "minute")
        if remaining > 0:
            text += f" and {_plural(remaining, 'second')}"
        return text

    return _plural(math.ceil(seconds), "second")
