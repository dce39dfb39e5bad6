"""
配置加载

优先级 (低 → 高): 默认值 < 环境变量 (.env) < YAML 配置文件 < 命令行参数
最终结果由 Pydantic 校验，校验失败抛出 ConfigError。
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .collectors.models import CHECK_ORDER
from .utils.errors import ConfigError

logger = logging.getLogger(__name__)

OutputFormat = Literal["html", "json", "log"]

# 环境变量 → 配置字段
ENV_VARS = {
    "KUBECONFIG": "kubeconfig",
    "KUBE_CONTEXT": "context",
    "TARGET_URL": "target_url",
    "OUTPUT_FORMAT": "output_format",
    "OUTPUT_DIR": "output_dir",
    "KUBECTL_TIMEOUT": "kubectl_timeout",
    "CHECK_TIMEOUT": "check_timeout",
    "PARALLEL_JOBS": "parallel_jobs",
    "ENABLE_GPU_MONITORING": "enable_gpu_monitoring",
}


class ComponentTarget(BaseModel):
    """需要 exec 进入的组件 Pod"""

    namespace: str
    selector: str
    mount_filter: str = "rbd"


class Thresholds(BaseModel):
    """阈值 (百分比)"""

    disk_warning: int = Field(80, ge=0, le=100)
    disk_critical: int = Field(90, ge=0, le=100)
    cpu: float = Field(80, ge=0, le=100)
    memory: float = Field(80, ge=0, le=100)
    pods: float = Field(80, ge=0, le=100)

    @model_validator(mode="after")
    def _check_disk_order(self):
        if self.disk_warning >= self.disk_critical:
            raise ValueError("disk_warning 必须小于 disk_critical")
        return self


class HealthCheckConfig(BaseModel):
    """健康检查配置"""

    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    target_url: Optional[str] = None
    output_format: OutputFormat = "html"
    output_dir: str = "reports"

    kubectl_timeout: int = Field(15, gt=0)
    check_timeout: float = Field(60, gt=0)
    parallel: bool = False
    parallel_jobs: int = Field(5, ge=1)

    enable_gpu_monitoring: bool = True
    verify_tls: bool = True

    thresholds: Thresholds = Field(default_factory=Thresholds)

    rook_ceph: ComponentTarget = Field(default_factory=lambda: ComponentTarget(
        namespace="rook-ceph", selector="app=rook-ceph-tools",
    ))
    harbor: ComponentTarget = Field(default_factory=lambda: ComponentTarget(
        namespace="harbor", selector="app=harbor,component=registry",
    ))
    minio: ComponentTarget = Field(default_factory=lambda: ComponentTarget(
        namespace="minio", selector="app.kubernetes.io/name=minio",
    ))

    # "命名空间/名称"，这些 Service 没有 Endpoint 也视为正常
    # CoreDNS Pod 所在命名空间与名称关键字
    coredns_namespace: str = "kube-system"
    coredns_name_filter: str = "coredns"

    service_exclusions: List[str] = Field(default_factory=lambda: ["kserve/modelmesh-serving"])
    skip_checks: List[str] = Field(default_factory=list)

    @field_validator("target_url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            return None
        if not value.startswith(("http://", "https://")):
            raise ValueError("URL 必须以 http:// 或 https:// 开头")
        return value

    @field_validator("skip_checks")
    @classmethod
    def _check_skip(cls, value: List[str]) -> List[str]:
        unknown = [name for name in value if name not in CHECK_ORDER]
        if unknown:
            raise ValueError(f"未知的检查项: {', '.join(unknown)}")
        return value

    @field_validator("service_exclusions")
    @classmethod
    def _check_exclusions(cls, value: List[str]) -> List[str]:
        for entry in value:
            if entry.count("/") != 1:
                raise ValueError(f"排除项格式应为 命名空间/名称: {entry}")
        return value

    def enabled_checks(self) -> List[str]:
        """按规范顺序返回需要执行的检查"""
        checks = [name for name in CHECK_ORDER if name not in self.skip_checks]
        if not self.target_url:
            checks = [name for name in checks if name != "url_check"]
        return checks


def _env_values(environ: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for env_name, field in ENV_VARS.items():
        raw = environ.get(env_name)
        if raw is not None and raw.strip() != "":
            values[field] = raw.strip()
    return values


def _load_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError("配置文件不存在", field="config", value=path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"配置文件解析失败: {e}", field="config", value=path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("配置文件顶层必须是映射", field="config", value=path)
    return data


def _merge(base: Dict[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """递归合并字典，overlay 中的 None 值被忽略"""
    merged = dict(base)
    for key, value in overlay.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> HealthCheckConfig:
    """
    加载并校验配置

    Args:
        config_file: YAML 配置文件路径 (可选)
        overrides: 命令行参数覆盖项，值为 None 的键被忽略
        environ: 环境变量映射 (默认 os.environ)

    Returns:
        HealthCheckConfig

    Raises:
        ConfigError: 配置文件不存在、无法解析或校验失败
    """
    data = _env_values(os.environ if environ is None else environ)

    if config_file:
        logger.debug("加载配置文件: %s", config_file)
        data = _merge(data, _load_yaml(config_file))

    if overrides:
        data = _merge(data, overrides)

    try:
        return HealthCheckConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigError(
            f"配置校验失败: {first.get('msg')}",
            field=field or None,
            value=first.get("input"),
        ) from e
