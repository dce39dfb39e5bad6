"""
工具模块
"""

from .errors import (
    ErrorCode,
    HealthCheckError,
    ProbeError,
    ConfigError,
    classify_kubectl_error,
)
from .quantity import parse_cpu, parse_memory, percent

__all__ = [
    "ErrorCode",
    "HealthCheckError",
    "ProbeError",
    "ConfigError",
    "classify_kubectl_error",
    "parse_cpu",
    "parse_memory",
    "percent",
]
