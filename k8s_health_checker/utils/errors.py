"""
健康检查错误类型定义

提供结构化的错误处理机制
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorCode(Enum):
    """错误码枚举"""

    # 超时类错误
    TIMEOUT = "TIMEOUT"

    # 权限类错误
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # 资源类错误
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # API 类错误
    API_ERROR = "API_ERROR"
    PARSE_ERROR = "PARSE_ERROR"

    # 网络类错误
    CONNECTION_FAILED = "CONNECTION_FAILED"

    # 配置类错误
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"

    # 未知错误
    UNKNOWN = "UNKNOWN"


class HealthCheckError(Exception):
    """健康检查异常基类

    Attributes:
        message: 错误消息
        code: 错误码
        details: 额外的错误详情
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典格式"""
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details
        }

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.value}] {self.message} ({details_str})"
        return f"[{self.code.value}] {self.message}"


class ProbeError(HealthCheckError):
    """探测错误

    kubectl / HTTP 等外部调用失败时抛出，由编排器转换为 FAILED 结果
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_name: Optional[str] = None,
        code: ErrorCode = ErrorCode.API_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            message: 错误描述
            resource_type: 资源类型 (如 pods, nodes)
            resource_name: 资源名称
            code: 错误码 (默认 API_ERROR)
            details: 额外详情
        """
        all_details = details or {}
        if resource_type:
            all_details["resource_type"] = resource_type
        if resource_name:
            all_details["resource_name"] = resource_name

        super().__init__(message, code, all_details)


class ConfigError(HealthCheckError):
    """配置错误

    用于配置文件、环境变量或命令行参数的验证失败
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        all_details = details or {}
        if field:
            all_details["field"] = field
        if value is not None:
            all_details["value"] = str(value)

        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, all_details)


def classify_kubectl_error(error: str) -> ErrorCode:
    """根据 kubectl stderr 文本判断错误类型"""
    text = (error or "").lower()

    if "not found" in text:
        return ErrorCode.RESOURCE_NOT_FOUND
    if "forbidden" in text or "unauthorized" in text:
        return ErrorCode.PERMISSION_DENIED
    if "timed out" in text or "timeout" in text:
        return ErrorCode.TIMEOUT
    if "connection refused" in text or "unable to connect" in text or "no such host" in text:
        return ErrorCode.CONNECTION_FAILED
    return ErrorCode.API_ERROR
