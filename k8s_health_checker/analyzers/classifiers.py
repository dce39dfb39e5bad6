"""
状态分类器

把 kubectl / HTTP / exec 的原始输出转换为 CheckResult。
本模块只包含纯函数：不做 I/O，不读取时钟，相同输入总是得到相同结果。

每个检查分两步：
1. extract_* 从原始 JSON 中提取需要的字段
2. classify_* 根据固定规则给出 SUCCESS / WARNING / FAILED
"""

import json
import re
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from ..collectors.models import CheckName, CheckResult, NodeResourceSample, Status

# details 中最多列出的条目数
MAX_LISTED = 20

HEALTHY_POD_PHASES = ("Running", "Succeeded")
HEALTHY_PV_PHASES = ("Bound", "Available")
REACHABLE_STATUS_CODES = (401, 403)


class PodPhase(NamedTuple):
    namespace: str
    name: str
    phase: str


class DeploymentReplicas(NamedTuple):
    namespace: str
    name: str
    replicas: int
    ready_replicas: int
    available_replicas: int


class ServiceEndpoints(NamedTuple):
    namespace: str
    name: str
    type: str
    address_count: int


class VolumePhase(NamedTuple):
    namespace: str
    name: str
    phase: str


class IngressBackend(NamedTuple):
    namespace: str
    ingress: str
    service: str


def _items(data) -> List[Dict]:
    """kubectl -o json 列表的 items，结构异常时返回空列表"""
    if isinstance(data, dict):
        items = data.get("items")
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


def _join_limited(entries: Sequence[str], limit: int = MAX_LISTED) -> str:
    shown = ", ".join(entries[:limit])
    if len(entries) > limit:
        shown += f" ... (其余 {len(entries) - limit} 个)"
    return shown


def _int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ========== 节点 ==========

def extract_node_conditions(nodes_json) -> List[Tuple[str, str]]:
    """提取 (节点名, Ready 条件状态)，没有 Ready 条件记为 Unknown"""
    conditions = []
    for node in _items(nodes_json):
        name = node.get("metadata", {}).get("name", "<unknown>")
        ready = "Unknown"
        for condition in node.get("status", {}).get("conditions") or []:
            if condition.get("type") == "Ready":
                ready = str(condition.get("status", "Unknown"))
                break
        conditions.append((name, ready))
    return conditions


def classify_nodes(conditions: Sequence[Tuple[str, str]]) -> CheckResult:
    name = CheckName.NODES.value

    if not conditions:
        return CheckResult(
            name=name,
            status=Status.FAILED,
            details="未找到任何节点",
            explanation="集群中没有可用节点，请检查 kubeconfig 与 API Server 连通性。",
        )

    not_ready = [node for node, ready in conditions if ready != "True"]
    if not not_ready:
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"全部 {len(conditions)} 个节点 Ready",
        )

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details=f"{len(not_ready)}/{len(conditions)} 个节点未 Ready: {_join_limited(not_ready)}",
        explanation="请执行 kubectl describe node <节点名> 查看 kubelet、容器运行时与网络插件状态。",
    )


# ========== Pod ==========

def extract_pod_phases(pods_json) -> List[PodPhase]:
    phases = []
    for pod in _items(pods_json):
        metadata = pod.get("metadata", {})
        phases.append(PodPhase(
            namespace=metadata.get("namespace", ""),
            name=metadata.get("name", "<unknown>"),
            phase=pod.get("status", {}).get("phase") or "Unknown",
        ))
    return phases


def _phase_label(pod: Union[str, PodPhase]) -> Tuple[str, Optional[str]]:
    if isinstance(pod, PodPhase):
        return pod.phase, f"{pod.namespace}/{pod.name} ({pod.phase})"
    return pod, None


def classify_pods(pods: Sequence[Union[str, PodPhase]]) -> CheckResult:
    """Pod 阶段分类

    只有 Running/Succeeded → SUCCESS；
    存在 Pending 且没有其他异常阶段 → WARNING；
    存在任何其他阶段 (Failed、Unknown 等) → FAILED
    """
    name = CheckName.PODS.value

    counts: Dict[str, int] = {}
    pending: List[str] = []
    failed: List[str] = []

    for pod in pods:
        phase, label = _phase_label(pod)
        counts[phase] = counts.get(phase, 0) + 1
        if phase in HEALTHY_POD_PHASES:
            continue
        target = pending if phase == "Pending" else failed
        target.append(label or phase)

    summary = ", ".join(f"{phase}={count}" for phase, count in sorted(counts.items()))
    if not summary:
        summary = "无 Pod"

    if failed:
        return CheckResult(
            name=name,
            status=Status.FAILED,
            details=f"{summary}; 异常: {_join_limited(failed)}",
            explanation="请执行 kubectl describe pod / kubectl logs 查看异常 Pod 的事件与日志。",
        )

    if pending:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details=f"{summary}; Pending: {_join_limited(pending)}",
            explanation="Pending 的 Pod 可能在等待调度或拉取镜像，请检查节点资源、PVC 绑定与镜像仓库。",
        )

    return CheckResult(name=name, status=Status.SUCCESS, details=summary)


# ========== CoreDNS ==========

def classify_coredns(pods: Sequence[PodPhase], name_filter: str = "coredns") -> CheckResult:
    """名称包含 name_filter 的 Pod 必须全部 Running

    有非 Running 的 Pod → FAILED；一个都没有找到 → WARNING (可能使用其他 DNS 组件)
    """
    name = CheckName.COREDNS.value
    dns_pods = [pod for pod in pods if name_filter in pod.name]

    if not dns_pods:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details=f"未找到名称包含 {name_filter} 的 Pod",
            explanation="集群可能使用其他 DNS 组件，或需要在配置中调整 coredns_namespace / coredns_name_filter。",
        )

    not_running = [f"{pod.name} ({pod.phase})" for pod in dns_pods if pod.phase != "Running"]
    if not_running:
        return CheckResult(
            name=name,
            status=Status.FAILED,
            details=f"{len(not_running)}/{len(dns_pods)} 个 CoreDNS Pod 未运行: {_join_limited(not_running)}",
            explanation="集群内域名解析可能失败，请执行 kubectl -n kube-system logs -l k8s-app=kube-dns 查看原因。",
        )

    return CheckResult(name=name, status=Status.SUCCESS, details=f"全部 {len(dns_pods)} 个 CoreDNS Pod 运行中")


# ========== Deployment ==========

def extract_deployment_replicas(deployments_json) -> List[DeploymentReplicas]:
    """缺失的 status 字段按 0 处理，缺失的 spec.replicas 按 1 处理"""
    deployments = []
    for item in _items(deployments_json):
        metadata = item.get("metadata", {})
        spec = item.get("spec", {}) or {}
        status = item.get("status", {}) or {}
        deployments.append(DeploymentReplicas(
            namespace=metadata.get("namespace", ""),
            name=metadata.get("name", "<unknown>"),
            replicas=_int(spec.get("replicas"), 1),
            ready_replicas=_int(status.get("readyReplicas")),
            available_replicas=_int(status.get("availableReplicas")),
        ))
    return deployments


def classify_deployments(deployments: Sequence[DeploymentReplicas]) -> CheckResult:
    name = CheckName.DEPLOYMENTS.value

    unhealthy = [
        f"{d.namespace}/{d.name} ({d.ready_replicas}/{d.available_replicas}/{d.replicas})"
        for d in deployments
        if not (d.replicas == d.ready_replicas == d.available_replicas)
    ]

    if not unhealthy:
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"全部 {len(deployments)} 个 Deployment 副本就绪",
        )

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details=f"{len(unhealthy)} 个 Deployment 副本未就绪 (ready/available/desired): {_join_limited(unhealthy)}",
        explanation="请执行 kubectl rollout status deployment/<名称> -n <命名空间> 并检查对应 Pod 的事件。",
    )


# ========== Service ==========

def extract_service_endpoints(services_json, endpoints_json) -> List[ServiceEndpoints]:
    """把 Service 与同名 Endpoints 的就绪地址数关联起来"""
    address_counts: Dict[Tuple[str, str], int] = {}
    for endpoints in _items(endpoints_json):
        metadata = endpoints.get("metadata", {})
        key = (metadata.get("namespace", ""), metadata.get("name", ""))
        count = 0
        for subset in endpoints.get("subsets") or []:
            count += len(subset.get("addresses") or [])
        address_counts[key] = count

    services = []
    for service in _items(services_json):
        metadata = service.get("metadata", {})
        key = (metadata.get("namespace", ""), metadata.get("name", "<unknown>"))
        services.append(ServiceEndpoints(
            namespace=key[0],
            name=key[1],
            type=service.get("spec", {}).get("type") or "ClusterIP",
            address_count=address_counts.get(key, 0),
        ))
    return services


def classify_services(
    services: Sequence[ServiceEndpoints],
    exclusions: Iterable[str] = ()
) -> CheckResult:
    """exclusions 元素格式为 "命名空间/名称"，被排除的 Service 总是视为健康"""
    name = CheckName.SERVICES.value
    excluded = set(exclusions)

    missing = [
        f"{s.namespace}/{s.name}"
        for s in services
        if s.type != "ExternalName"
        and s.address_count < 1
        and f"{s.namespace}/{s.name}" not in excluded
    ]

    if not missing:
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"全部 {len(services)} 个 Service 具有可用 Endpoint",
        )

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details=f"{len(missing)} 个 Service 没有可用 Endpoint: {_join_limited(missing)}",
        explanation="请确认 Service 的 selector 与后端 Pod 标签一致，且后端 Pod 处于 Ready 状态。",
    )


# ========== 存储 ==========

def extract_volume_phases(volumes_json) -> List[VolumePhase]:
    """提取 PV (namespace 为空) 或 PVC 的阶段"""
    volumes = []
    for item in _items(volumes_json):
        metadata = item.get("metadata", {})
        volumes.append(VolumePhase(
            namespace=metadata.get("namespace", ""),
            name=metadata.get("name", "<unknown>"),
            phase=item.get("status", {}).get("phase") or "Unknown",
        ))
    return volumes


def classify_storage(pvs: Sequence[VolumePhase], pvcs: Sequence[VolumePhase]) -> CheckResult:
    """PV 为 Bound 或 Available、PVC 为 Bound 时视为正常"""
    name = CheckName.STORAGE.value

    bad_pvs = [f"{pv.name} ({pv.phase})" for pv in pvs if pv.phase not in HEALTHY_PV_PHASES]
    bad_pvcs = [f"{pvc.namespace}/{pvc.name} ({pvc.phase})" for pvc in pvcs if pvc.phase != "Bound"]

    if not bad_pvs and not bad_pvcs:
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"PV {len(pvs)} 个, PVC {len(pvcs)} 个, 均已绑定",
        )

    parts = []
    if bad_pvs:
        parts.append(f"异常 PV: {_join_limited(bad_pvs)}")
    if bad_pvcs:
        parts.append(f"未绑定 PVC: {_join_limited(bad_pvcs)}")

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details="; ".join(parts),
        explanation="请检查 StorageClass 与存储后端状态，并执行 kubectl describe pvc 查看绑定事件。",
    )


# ========== Ingress ==========

def extract_ingress_backends(ingresses_json) -> Tuple[int, List[IngressBackend]]:
    """返回 (Ingress 数量, 引用的后端 Service 列表)"""
    ingresses = _items(ingresses_json)
    backends: List[IngressBackend] = []

    for ingress in ingresses:
        metadata = ingress.get("metadata", {})
        namespace = metadata.get("namespace", "")
        ingress_name = metadata.get("name", "<unknown>")
        spec = ingress.get("spec", {}) or {}

        default_service = ((spec.get("defaultBackend") or {}).get("service") or {}).get("name")
        if default_service:
            backends.append(IngressBackend(namespace, ingress_name, default_service))

        for rule in spec.get("rules") or []:
            for path in (rule.get("http") or {}).get("paths") or []:
                service_name = ((path.get("backend") or {}).get("service") or {}).get("name")
                if service_name:
                    backends.append(IngressBackend(namespace, ingress_name, service_name))

    return len(ingresses), backends


def extract_service_names(services_json) -> Set[Tuple[str, str]]:
    """现有 Service 的 (命名空间, 名称) 集合"""
    return {
        (s.get("metadata", {}).get("namespace", ""), s.get("metadata", {}).get("name", ""))
        for s in _items(services_json)
    }


def classify_ingress(
    ingress_count: int,
    backends: Sequence[IngressBackend],
    existing_services: Set[Tuple[str, str]]
) -> CheckResult:
    name = CheckName.INGRESS.value

    if ingress_count == 0:
        return CheckResult(name=name, status=Status.SUCCESS, details="集群中没有 Ingress")

    dangling = []
    for backend in backends:
        if (backend.namespace, backend.service) not in existing_services:
            label = f"{backend.namespace}/{backend.ingress} → {backend.service}"
            if label not in dangling:
                dangling.append(label)

    if not dangling:
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"{ingress_count} 个 Ingress 的 {len(backends)} 个后端 Service 均存在",
        )

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details=f"{len(dangling)} 个后端 Service 不存在: {_join_limited(dangling)}",
        explanation="Ingress 引用的 Service 必须位于同一命名空间，请创建缺失的 Service 或修正 Ingress 规则。",
    )


# ========== URL ==========

def is_reachable_code(status_code: Optional[int]) -> bool:
    """2xx、3xx、401、403 视为可达"""
    if status_code is None:
        return False
    return 200 <= status_code < 400 or status_code in REACHABLE_STATUS_CODES


def classify_url(
    url: str,
    status_code: Optional[int],
    elapsed: Optional[float] = None,
    error: Optional[str] = None
) -> CheckResult:
    name = CheckName.URL_CHECK.value

    if status_code is None:
        return CheckResult(
            name=name,
            status=Status.FAILED,
            details=f"{url} 连接失败: {error or '无响应'}",
            explanation="请检查 DNS 解析、防火墙与负载均衡器，并确认服务已对外暴露。",
        )

    timing = f", 耗时 {elapsed:.3f}s" if elapsed is not None else ""

    if is_reachable_code(status_code):
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"{url} 响应 HTTP {status_code}{timing}",
        )

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details=f"{url} 响应 HTTP {status_code}{timing}",
        explanation="目标返回错误状态码，请检查 Ingress 路由与后端服务日志。",
    )


# ========== Rook-Ceph ==========

def parse_ceph_health(output) -> Optional[str]:
    """从 `ceph status --format json` 输出中读取 health.status"""
    data = output
    if isinstance(output, str):
        try:
            data = json.loads(output)
        except json.JSONDecodeError:
            return None

    if not isinstance(data, dict):
        return None

    health = data.get("health")
    if isinstance(health, dict):
        status = health.get("status") or health.get("overall_status")
        return str(status) if status else None
    return None


def classify_ceph(
    health: Optional[str],
    tool_found: bool = True,
    error: Optional[str] = None
) -> CheckResult:
    """tools Pod 不存在 → WARNING (未安装)；无法查询 tools Pod → WARNING (附 kubectl 错误)；
    HEALTH_OK → SUCCESS；HEALTH_WARN → WARNING；其余 (含执行/解析失败) → FAILED
    """
    name = CheckName.ROOK_CEPH.value

    if not tool_found and error:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details=f"无法查询 rook-ceph-tools Pod: {error}",
            explanation="无法判断 Rook-Ceph 是否安装，请检查 kubectl 权限 (RBAC) 与集群连通性。",
        )

    if not tool_found:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details="未找到 rook-ceph-tools Pod，Rook-Ceph 可能未安装",
            explanation="如集群使用 Rook-Ceph，请部署 rook-ceph-tools 以便执行健康检查。",
        )

    if health == "HEALTH_OK":
        return CheckResult(name=name, status=Status.SUCCESS, details="Ceph 状态: HEALTH_OK")

    if health == "HEALTH_WARN":
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details="Ceph 状态: HEALTH_WARN",
            explanation="请在 tools Pod 中执行 ceph health detail 查看告警原因。",
        )

    if health is None:
        details = f"无法获取 Ceph 状态: {error or '输出无法解析'}"
    else:
        details = f"Ceph 状态: {health}"

    return CheckResult(
        name=name,
        status=Status.FAILED,
        details=details,
        explanation="请在 tools Pod 中执行 ceph health detail 与 ceph osd tree 排查 OSD/MON 状态。",
    )


# ========== 磁盘使用率 ==========

_PERCENT_RE = re.compile(r"^(\d+)%$")


def parse_df_usage(output: Optional[str], mount_filter: str = "rbd") -> Optional[int]:
    """从 `df -h` 输出中取第一条匹配 mount_filter 的行的使用率 (第 5 列)"""
    if not output or not isinstance(output, str):
        return None

    for line in output.splitlines():
        if mount_filter not in line:
            continue
        columns = line.split()
        if len(columns) < 5:
            continue
        match = _PERCENT_RE.match(columns[4])
        if match:
            return int(match.group(1))
    return None


def classify_disk_usage(
    name: str,
    usage: Optional[int],
    warning_threshold: int = 80,
    critical_threshold: int = 90,
    reason: Optional[str] = None
) -> CheckResult:
    """< warning → SUCCESS；warning ~ critical-1 → WARNING；≥ critical → FAILED；
    无法取得使用率 → WARNING (未知不等于异常)
    """
    if usage is None:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details=f"无法确定磁盘使用率: {reason or '未找到目标 Pod 或挂载点'}",
            explanation="请确认组件已部署且 Pod 处于 Running 状态，或在配置中调整命名空间/标签。",
        )

    if usage >= critical_threshold:
        return CheckResult(
            name=name,
            status=Status.FAILED,
            details=f"磁盘使用率 {usage}%",
            explanation="磁盘即将写满，请立即清理数据或扩容 PVC。",
        )

    if usage >= warning_threshold:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details=f"磁盘使用率 {usage}%",
            explanation="磁盘使用率偏高，请规划清理或扩容。",
        )

    return CheckResult(name=name, status=Status.SUCCESS, details=f"磁盘使用率 {usage}%")


# ========== 节点资源 ==========

def classify_node_resources(
    samples: Sequence[NodeResourceSample],
    cpu_threshold: float = 80,
    memory_threshold: float = 80,
    pod_threshold: float = 80
) -> CheckResult:
    """任一节点 CPU / 内存 / Pod 百分比 ≥ 阈值 → WARNING"""
    name = CheckName.NODE_RESOURCES.value

    if not samples:
        return CheckResult(
            name=name,
            status=Status.WARNING,
            details="无法确定节点资源使用情况",
            explanation="请确认当前账号具有 nodes 与 pods 的读取权限。",
        )

    issues = []
    for sample in samples:
        if sample.cpu_percent >= cpu_threshold:
            issues.append(f"{sample.name}: CPU {sample.cpu_percent}%")
        if sample.memory_percent >= memory_threshold:
            issues.append(f"{sample.name}: 内存 {sample.memory_percent}%")
        if sample.pod_percent >= pod_threshold:
            issues.append(f"{sample.name}: Pod {sample.pod_percent}%")

    if not issues:
        return CheckResult(
            name=name,
            status=Status.SUCCESS,
            details=f"{len(samples)} 个节点资源使用率均低于阈值",
        )

    return CheckResult(
        name=name,
        status=Status.WARNING,
        details=f"资源使用率超过阈值: {_join_limited(issues)}",
        explanation="请考虑扩容节点、调整资源 requests 或迁移负载。",
    )
