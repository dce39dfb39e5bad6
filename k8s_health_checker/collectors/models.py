"""
健康检查数据模型定义

状态与检查名使用 str 枚举，检查结果与节点资源快照使用 Pydantic 模型
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict


class Status(str, Enum):
    """检查状态枚举

    严重程度: FAILED > WARNING > SUCCESS
    """
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    FAILED = "FAILED"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    @property
    def icon(self) -> str:
        return _ICONS[self]


_SEVERITY = {
    Status.SUCCESS: 0,
    Status.WARNING: 1,
    Status.FAILED: 2,
}

_ICONS = {
    Status.SUCCESS: "✅",
    Status.WARNING: "⚠️",
    Status.FAILED: "❌",
}


def worst_status(statuses: Iterable[Status]) -> Status:
    """返回最严重的状态，空集合视为 SUCCESS"""
    worst = Status.SUCCESS
    for status in statuses:
        if status.severity > worst.severity:
            worst = status
    return worst


class CheckName(str, Enum):
    """检查项名称枚举"""
    NODES = "nodes"
    PODS = "pods"
    COREDNS = "coredns"
    DEPLOYMENTS = "deployments"
    SERVICES = "services"
    STORAGE = "storage"
    INGRESS = "ingress"
    URL_CHECK = "url_check"
    ROOK_CEPH = "rook_ceph"
    HARBOR_DISK = "harbor_disk"
    MINIO_DISK = "minio_disk"
    NODE_RESOURCES = "node_resources"


# 规范顺序：报告渲染与顺序执行都按此顺序
CHECK_ORDER: List[str] = [name.value for name in CheckName]

CHECK_TITLES: Dict[str, str] = {
    CheckName.NODES.value: "节点状态",
    CheckName.PODS.value: "Pod 状态",
    CheckName.COREDNS.value: "CoreDNS 状态",
    CheckName.DEPLOYMENTS.value: "Deployment 状态",
    CheckName.SERVICES.value: "Service Endpoints",
    CheckName.STORAGE.value: "存储 (PV/PVC)",
    CheckName.INGRESS.value: "Ingress 后端",
    CheckName.URL_CHECK.value: "URL 连通性",
    CheckName.ROOK_CEPH.value: "Rook-Ceph 健康",
    CheckName.HARBOR_DISK.value: "Harbor 磁盘使用率",
    CheckName.MINIO_DISK.value: "Minio 磁盘使用率",
    CheckName.NODE_RESOURCES.value: "节点资源使用率",
}


def check_title(name: str) -> str:
    """检查项显示名称，未知名称原样返回"""
    return CHECK_TITLES.get(name, name)


class CheckResult(BaseModel):
    """单个检查结果"""

    model_config = ConfigDict(frozen=True)

    name: str
    status: Status
    details: str = ""
    explanation: Optional[str] = None


class NodeResourceSample(BaseModel):
    """节点资源快照

    CPU 单位为毫核，内存单位为 Ki，百分比保留 1 位小数。
    GPU 字段仅在节点具备 GPU 时填充。
    """

    name: str
    pod_count: int = 0
    max_pods: int = 0
    pod_percent: float = 0.0
    cpu_allocatable: int = 0
    cpu_requests: int = 0
    cpu_percent: float = 0.0
    memory_allocatable: int = 0
    memory_requests: int = 0
    memory_percent: float = 0.0
    gpu_capacity: Optional[int] = None
    gpu_allocatable: Optional[int] = None
    gpu_requests: Optional[int] = None
    gpu_percent: Optional[float] = None

    @property
    def has_gpu(self) -> bool:
        # 渲染依赖 gpu_percent，残缺的 GPU 字段按无 GPU 处理
        return self.gpu_capacity is not None and self.gpu_percent is not None

    def to_report_dict(self) -> Dict:
        """报告用字典 (无 GPU 时不输出 gpu_* 字段)"""
        return self.model_dump(exclude_none=True)


class Summary(BaseModel):
    """汇总统计"""

    total_checks: int = 0
    success_count: int = 0
    warning_count: int = 0
    failed_count: int = 0
    overall_status: Status = Status.SUCCESS

    @property
    def exit_code(self) -> int:
        """进程退出码: 0 全部成功, 1 存在失败, 2 仅有警告"""
        if self.failed_count > 0:
            return 1
        if self.warning_count > 0:
            return 2
        return 0

    @classmethod
    def from_statuses(cls, statuses: Iterable[Status]) -> "Summary":
        statuses = list(statuses)
        success = sum(1 for s in statuses if s == Status.SUCCESS)
        warning = sum(1 for s in statuses if s == Status.WARNING)
        failed = sum(1 for s in statuses if s == Status.FAILED)

        if failed > 0:
            overall = Status.FAILED
        elif warning > 0:
            overall = Status.WARNING
        else:
            overall = Status.SUCCESS

        return cls(
            total_checks=len(statuses),
            success_count=success,
            warning_count=warning,
            failed_count=failed,
            overall_status=overall,
        )
