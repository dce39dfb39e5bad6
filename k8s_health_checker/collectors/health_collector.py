"""
健康检查编排器

按固定顺序 (或有限并发) 执行全部检查，并把结果写入 ResultStore。

容错约定：
- 单个检查的任何异常或超时都会被转换为该检查的 FAILED 结果
- 一个检查失败不会影响其他检查，也不会阻止报告生成
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional

from ..analyzers.classifiers import (
    classify_ceph,
    classify_coredns,
    classify_deployments,
    classify_disk_usage,
    classify_ingress,
    classify_node_resources,
    classify_nodes,
    classify_pods,
    classify_services,
    classify_storage,
    classify_url,
    extract_deployment_replicas,
    extract_ingress_backends,
    extract_node_conditions,
    extract_pod_phases,
    extract_service_endpoints,
    extract_service_names,
    extract_volume_phases,
    parse_ceph_health,
    parse_df_usage,
)
from ..config import ComponentTarget, HealthCheckConfig
from ..result_store import ResultStore
from ..utils.errors import ErrorCode, HealthCheckError, ProbeError, classify_kubectl_error
from .http_probe import UrlProbeResult, probe_url
from .models import CheckName, CheckResult, Status
from .node_resources import build_node_samples

logger = logging.getLogger(__name__)

UrlProber = Callable[..., Awaitable[UrlProbeResult]]
ProgressCallback = Callable[[CheckResult], None]

CEPH_STATUS_COMMAND = ["ceph", "status", "--format", "json"]
DISK_USAGE_COMMAND = ["df", "-h"]


class RunOutcome(NamedTuple):
    """一次完整运行的结果"""
    store: ResultStore
    started_at: datetime
    duration_seconds: float


def _require(result: Dict, resource_type: str):
    """kubectl 调用失败时抛出 ProbeError，成功时返回 data"""
    if not result.get("success"):
        error = result.get("error", "") or "unknown error"
        raise ProbeError(
            f"获取 {resource_type} 失败: {error}",
            resource_type=resource_type,
            code=classify_kubectl_error(error),
        )
    return result.get("data")


async def _execute_with_limit(
    tasks: List,
    max_concurrent: int = 5
) -> List:
    """限制并发数执行任务"""
    semaphore = asyncio.Semaphore(max_concurrent)

    async def run_with_semaphore(task):
        async with semaphore:
            return await task

    return await asyncio.gather(
        *[run_with_semaphore(task) for task in tasks],
        return_exceptions=True
    )


class HealthCheckRunner:
    """健康检查编排器

    Example:
        client = KubectlWrapper(context="prod")
        runner = HealthCheckRunner(client, load_config())
        outcome = await runner.run(parallel=True)
        print(outcome.store.summary())
    """

    def __init__(
        self,
        client,
        config: HealthCheckConfig,
        url_prober: UrlProber = probe_url,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Args:
            client: KubectlWrapper 或具有相同接口的对象
            config: 健康检查配置
            url_prober: URL 探测函数 (默认 requests 实现)
            progress_callback: 每个检查完成时的回调
        """
        self.client = client
        self.config = config
        self.url_prober = url_prober
        self.progress_callback = progress_callback
        self.store = ResultStore()

        self._checks: Dict[str, Callable[[], Awaitable[CheckResult]]] = {
            CheckName.NODES.value: self.check_nodes,
            CheckName.PODS.value: self.check_pods,
            CheckName.COREDNS.value: self.check_coredns,
            CheckName.DEPLOYMENTS.value: self.check_deployments,
            CheckName.SERVICES.value: self.check_services,
            CheckName.STORAGE.value: self.check_storage,
            CheckName.INGRESS.value: self.check_ingress,
            CheckName.URL_CHECK.value: self.check_url,
            CheckName.ROOK_CEPH.value: self.check_rook_ceph,
            CheckName.HARBOR_DISK.value: self.check_harbor_disk,
            CheckName.MINIO_DISK.value: self.check_minio_disk,
            CheckName.NODE_RESOURCES.value: self.check_node_resources,
        }

    async def run(self, parallel: Optional[bool] = None) -> RunOutcome:
        """
        执行全部启用的检查

        Args:
            parallel: 是否并发执行 (默认取配置中的 parallel)

        Returns:
            RunOutcome，store 中每个执行过的检查恰好一个结果
        """
        if parallel is None:
            parallel = self.config.parallel

        self.store = ResultStore()
        started_at = datetime.now().astimezone()
        start = time.monotonic()

        await self.preflight()

        names = self.config.enabled_checks()
        logger.info("开始执行 %d 项检查 (%s)", len(names), "并发" if parallel else "顺序")

        if parallel:
            await _execute_with_limit(
                [self._run_check(name) for name in names],
                max_concurrent=self.config.parallel_jobs,
            )
        else:
            for name in names:
                await self._run_check(name)

        duration = time.monotonic() - start
        logger.info("检查完成，耗时 %.1fs", duration)
        return RunOutcome(store=self.store, started_at=started_at, duration_seconds=duration)

    async def preflight(self) -> bool:
        """集群连通性预检，只记录日志，不中断运行"""
        try:
            result = await self.client.cluster_info()
        except Exception as e:
            logger.warning("集群连通性预检出错，继续执行检查: %s", e, exc_info=True)
            return False

        if result.get("success"):
            logger.debug("集群连接正常")
            return True

        logger.warning("无法连接集群，后续检查可能失败: %s", result.get("error"))
        return False

    async def _run_check(self, name: str) -> CheckResult:
        """执行单个检查，任何异常都转换为 FAILED 结果"""
        start = time.monotonic()
        timeout = self.config.check_timeout

        try:
            result = await asyncio.wait_for(self._checks[name](), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("检查 %s 超时 (>%ss)", name, timeout)
            result = CheckResult(
                name=name,
                status=Status.FAILED,
                details=f"检查超时 (>{timeout:g}s)",
                explanation="集群响应过慢或目标不可达，请检查 API Server 负载与网络。",
            )
        except HealthCheckError as e:
            logger.warning("检查 %s 失败: %s", name, e)
            result = CheckResult(
                name=name,
                status=Status.FAILED,
                details=e.message,
                explanation=_explain_error(e),
            )
        except Exception as e:
            logger.warning("检查 %s 执行出错: %s", name, e, exc_info=True)
            result = CheckResult(
                name=name,
                status=Status.FAILED,
                details=f"检查执行出错: {e}",
                explanation="检查过程中出现意外错误，请使用 --verbose 查看详细日志。",
            )

        self.store.add(result)
        logger.info("%s %s: %s (%.2fs)", result.status.icon, name, result.status.value, time.monotonic() - start)

        if self.progress_callback:
            self.progress_callback(result)

        return result

    # === 各项检查 ===

    async def check_nodes(self) -> CheckResult:
        data = _require(await self.client.get_nodes(), "nodes")
        return classify_nodes(extract_node_conditions(data))

    async def check_pods(self) -> CheckResult:
        data = _require(await self.client.get_pods(), "pods")
        return classify_pods(extract_pod_phases(data))

    async def check_coredns(self) -> CheckResult:
        namespace = self.config.coredns_namespace
        data = _require(await self.client.get_pods(namespace=namespace), f"pods -n {namespace}")
        return classify_coredns(extract_pod_phases(data), name_filter=self.config.coredns_name_filter)

    async def check_deployments(self) -> CheckResult:
        data = _require(await self.client.get_deployments(), "deployments")
        return classify_deployments(extract_deployment_replicas(data))

    async def check_services(self) -> CheckResult:
        services = _require(await self.client.get_services(), "services")
        endpoints = _require(await self.client.get_endpoints(), "endpoints")
        return classify_services(
            extract_service_endpoints(services, endpoints),
            exclusions=self.config.service_exclusions,
        )

    async def check_storage(self) -> CheckResult:
        pvs = _require(await self.client.get_pvs(), "persistentvolumes")
        pvcs = _require(await self.client.get_pvcs(), "persistentvolumeclaims")
        return classify_storage(extract_volume_phases(pvs), extract_volume_phases(pvcs))

    async def check_ingress(self) -> CheckResult:
        ingresses = _require(await self.client.get_ingresses(), "ingresses")
        count, backends = extract_ingress_backends(ingresses)
        if count == 0:
            return classify_ingress(0, [], set())

        services = _require(await self.client.get_services(), "services")
        return classify_ingress(count, backends, extract_service_names(services))

    async def check_url(self) -> CheckResult:
        url = self.config.target_url
        probe = await self.url_prober(url, verify_tls=self.config.verify_tls)
        return classify_url(url, probe.status_code, elapsed=probe.elapsed, error=probe.error)

    async def check_rook_ceph(self) -> CheckResult:
        target = self.config.rook_ceph
        pod, lookup_error = await self.client.find_pod(target.namespace, target.selector)
        if not pod:
            return classify_ceph(None, tool_found=False, error=lookup_error)

        result = await self.client.exec_in_pod(target.namespace, pod, CEPH_STATUS_COMMAND)
        if not result.get("success"):
            return classify_ceph(None, tool_found=True, error=result.get("error"))

        return classify_ceph(parse_ceph_health(result.get("data")), tool_found=True)

    async def check_harbor_disk(self) -> CheckResult:
        return await self._check_disk(CheckName.HARBOR_DISK.value, self.config.harbor)

    async def check_minio_disk(self) -> CheckResult:
        return await self._check_disk(CheckName.MINIO_DISK.value, self.config.minio)

    async def _check_disk(self, name: str, target: ComponentTarget) -> CheckResult:
        thresholds = self.config.thresholds
        pod, lookup_error = await self.client.find_pod(target.namespace, target.selector)
        if not pod:
            if lookup_error:
                reason = f"无法查询 Pod ({target.namespace}, {target.selector}): {lookup_error}"
            else:
                reason = f"未找到 Pod ({target.namespace}, {target.selector})"
            return classify_disk_usage(
                name, None,
                warning_threshold=thresholds.disk_warning,
                critical_threshold=thresholds.disk_critical,
                reason=reason,
            )

        result = await self.client.exec_in_pod(target.namespace, pod, DISK_USAGE_COMMAND)
        output = result.get("data") if result.get("success") else None
        usage = parse_df_usage(output if isinstance(output, str) else None, target.mount_filter)

        if usage is None:
            reason = result.get("error") if not result.get("success") else f"未找到包含 {target.mount_filter} 的挂载点"
        else:
            reason = None

        return classify_disk_usage(
            name, usage,
            warning_threshold=thresholds.disk_warning,
            critical_threshold=thresholds.disk_critical,
            reason=reason,
        )

    async def check_node_resources(self) -> CheckResult:
        nodes = _require(await self.client.get_nodes(), "nodes")
        pods = _require(await self.client.get_pods(), "pods")

        samples = build_node_samples(nodes, pods, include_gpu=self.config.enable_gpu_monitoring)
        for sample in samples:
            self.store.record_node_sample(sample)

        thresholds = self.config.thresholds
        return classify_node_resources(
            samples,
            cpu_threshold=thresholds.cpu,
            memory_threshold=thresholds.memory,
            pod_threshold=thresholds.pods,
        )


def _explain_error(error: HealthCheckError) -> str:
    """根据错误码给出排查建议"""
    code = error.code
    if code == ErrorCode.PERMISSION_DENIED:
        return "当前账号没有读取该资源的权限，请检查 RBAC 配置。"
    if code == ErrorCode.TIMEOUT:
        return "kubectl 调用超时，请检查 API Server 负载与网络连通性。"
    if code == ErrorCode.CONNECTION_FAILED:
        return "无法连接 API Server，请检查 kubeconfig、context 与网络。"
    if code == ErrorCode.RESOURCE_NOT_FOUND:
        return "资源类型不存在，请确认集群版本与相关 CRD 已安装。"
    return "kubectl 调用失败，请使用 --verbose 查看执行的命令与错误输出。"
