"""
Kubernetes 资源数量 (Quantity) 解析

CPU 统一换算为毫核 (m)，内存统一换算为 Ki。
"""

import re
from typing import Optional, Union

_QUANTITY_RE = re.compile(r"^\s*([+-]?[0-9.]+(?:[eE][+-]?[0-9]+)?)\s*([A-Za-z]*)\s*$")

# 二进制后缀 (相对 1 字节)
_BINARY_SUFFIXES = {
    "Ki": 1024,
    "Mi": 1024 ** 2,
    "Gi": 1024 ** 3,
    "Ti": 1024 ** 4,
    "Pi": 1024 ** 5,
    "Ei": 1024 ** 6,
}

# 十进制后缀
_DECIMAL_SUFFIXES = {
    "n": 10 ** -9,
    "u": 10 ** -6,
    "m": 10 ** -3,
    "": 1,
    "k": 10 ** 3,
    "K": 10 ** 3,
    "M": 10 ** 6,
    "G": 10 ** 9,
    "T": 10 ** 12,
    "P": 10 ** 15,
    "E": 10 ** 18,
}


def _to_base(value: Union[str, int, float, None]) -> Optional[float]:
    """将 Quantity 换算为基本单位 (核 / 字节)，无法解析返回 None"""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)

    match = _QUANTITY_RE.match(str(value))
    if not match:
        return None

    number, suffix = match.groups()
    try:
        amount = float(number)
    except ValueError:
        return None

    if suffix in _BINARY_SUFFIXES:
        return amount * _BINARY_SUFFIXES[suffix]
    if suffix in _DECIMAL_SUFFIXES:
        return amount * _DECIMAL_SUFFIXES[suffix]
    return None


def parse_cpu(value: Union[str, int, float, None]) -> int:
    """CPU Quantity → 毫核

    Example:
        parse_cpu("250m") == 250
        parse_cpu("2") == 2000
    """
    cores = _to_base(value)
    if cores is None:
        return 0
    return int(round(cores * 1000))


def parse_memory(value: Union[str, int, float, None]) -> int:
    """内存 Quantity → Ki

    Example:
        parse_memory("1Gi") == 1048576
        parse_memory("128974848") == 125952
    """
    size = _to_base(value)
    if size is None:
        return 0
    return int(size // 1024)


def percent(used: float, total: float) -> float:
    """计算百分比，保留 1 位小数；total 为 0 时返回 0.0"""
    if not total:
        return 0.0
    return round(used * 100.0 / total, 1)
