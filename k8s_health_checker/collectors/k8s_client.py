"""
Kubernetes 客户端 - 基于 kubectl

所有调用返回统一的结果字典，调用失败不会抛出异常:
    {"success": bool, "data": any, "error": str, "cmd": str}
"""

import asyncio
import json
import logging
import os
import subprocess
from typing import Dict, List, Optional, Tuple

from .cache import K8sCache

logger = logging.getLogger(__name__)


class KubectlWrapper:
    """kubectl 封装

    集成缓存机制，减少单次运行内重复的 kubectl 调用。
    """

    def __init__(
        self,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        timeout: int = 15,
        enable_cache: bool = True
    ):
        """
        Args:
            kubeconfig: kubeconfig 文件路径 (默认由 kubectl 自行解析)
            context: kubeconfig context (默认使用 current-context)
            timeout: 单次调用默认超时 (秒)
            enable_cache: 是否启用缓存 (默认 True)
        """
        self.kubeconfig = kubeconfig
        self.context = context
        self.timeout = timeout
        self.enable_cache = enable_cache
        self.kubectl_cmd = self._build_kubectl_cmd()
        self.cache = K8sCache() if enable_cache else None

    def _build_kubectl_cmd(self) -> List[str]:
        """构建 kubectl 命令前缀"""
        cmd = ["kubectl"]
        if self.kubeconfig:
            if os.path.isfile(self.kubeconfig):
                cmd.extend(["--kubeconfig", self.kubeconfig])
            else:
                logger.warning("kubeconfig 文件不存在，交给 kubectl 默认解析: %s", self.kubeconfig)
        if self.context:
            cmd.extend(["--context", self.context])
        return cmd

    async def run(self, cmd: List[str], timeout: Optional[int] = None, use_cache: bool = True) -> Dict:
        """
        执行命令并解析结果

        Args:
            cmd: 命令列表
            timeout: 超时时间（秒），默认使用客户端超时
            use_cache: 是否使用缓存 (默认 True)

        Returns:
            {"success": bool, "data": any, "error": str, "cmd": str}
        """
        timeout = timeout or self.timeout
        cmd_str = " ".join(cmd)
        cache_key = None

        if self.cache is not None and use_cache:
            cache_key = self.cache.generate_key(cmd_str)
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("缓存命中: %s", cmd_str)
                return cached

        logger.debug("执行: %s", cmd_str)

        try:
            result = await asyncio.to_thread(
                subprocess.run,
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout
            )
        except subprocess.TimeoutExpired:
            return {
                "success": False,
                "error": f"Command timed out after {timeout}s",
                "cmd": cmd_str
            }
        except Exception as e:
            # kubectl 不存在、不可执行或其他调用异常
            logger.debug("执行失败 %s: %s", cmd_str, e)
            return {
                "success": False,
                "error": str(e),
                "cmd": cmd_str
            }

        if result.returncode != 0:
            # 失败结果不缓存
            return {
                "success": False,
                "error": (result.stderr or "").strip() or f"exit code {result.returncode}",
                "cmd": cmd_str
            }

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            # 不是 JSON，返回原始文本
            data = result.stdout.strip()

        response = {"success": True, "data": data, "error": "", "cmd": cmd_str}

        if cache_key is not None:
            self.cache.set(cache_key, response)

        return response

    # === 集群信息 ===

    async def cluster_info(self) -> Dict:
        """kubectl cluster-info (连通性预检)"""
        return await self.run(self.kubectl_cmd + ["cluster-info"], timeout=10, use_cache=False)

    async def current_context(self) -> Dict:
        """当前使用的 context 名称"""
        if self.context:
            return {"success": True, "data": self.context, "error": "", "cmd": ""}
        return await self.run(self.kubectl_cmd + ["config", "current-context"], timeout=5)

    # === 标准 K8s 资源操作 ===

    async def get_nodes(self) -> Dict:
        """获取所有节点"""
        cmd = self.kubectl_cmd + ["get", "nodes", "-o", "json"]
        return await self.run(cmd)

    async def get_pods(self, namespace: str = None, selector: str = None) -> Dict:
        """获取 Pod 列表 (未指定命名空间时为全部命名空间)"""
        cmd = self.kubectl_cmd + ["get", "pods"]

        if namespace:
            cmd.extend(["-n", namespace])
        else:
            cmd.append("-A")

        if selector:
            cmd.extend(["-l", selector])

        cmd.extend(["-o", "json"])
        return await self.run(cmd)

    async def get_deployments(self) -> Dict:
        """获取全部命名空间的 Deployment"""
        cmd = self.kubectl_cmd + ["get", "deployments", "-A", "-o", "json"]
        return await self.run(cmd)

    async def get_services(self) -> Dict:
        """获取全部命名空间的 Service"""
        cmd = self.kubectl_cmd + ["get", "services", "-A", "-o", "json"]
        return await self.run(cmd)

    async def get_endpoints(self) -> Dict:
        """获取全部命名空间的 Endpoints"""
        cmd = self.kubectl_cmd + ["get", "endpoints", "-A", "-o", "json"]
        return await self.run(cmd)

    async def get_pvs(self) -> Dict:
        """获取 PersistentVolume"""
        cmd = self.kubectl_cmd + ["get", "pv", "-o", "json"]
        return await self.run(cmd)

    async def get_pvcs(self) -> Dict:
        """获取全部命名空间的 PersistentVolumeClaim"""
        cmd = self.kubectl_cmd + ["get", "pvc", "-A", "-o", "json"]
        return await self.run(cmd)

    async def get_ingresses(self) -> Dict:
        """获取全部命名空间的 Ingress"""
        cmd = self.kubectl_cmd + ["get", "ingress", "-A", "-o", "json"]
        return await self.run(cmd)

    async def get_events(self) -> Dict:
        """获取全部命名空间的事件"""
        cmd = self.kubectl_cmd + ["get", "events", "-A", "-o", "json"]
        return await self.run(cmd)

    async def find_pod(self, namespace: str, selector: str) -> Tuple[Optional[str], Optional[str]]:
        """
        根据 selector 查找 Pod，优先返回 Running 的 Pod

        Returns:
            (pod_name, error)：找到时 error 为 None；Pod 不存在时两者均为 None；
            kubectl 查询失败时 pod_name 为 None，error 为错误信息
        """
        result = await self.get_pods(namespace=namespace, selector=selector)
        if not result.get("success"):
            error = result.get("error") or "unknown error"
            logger.warning("查找 Pod 失败 %s/%s: %s", namespace, selector, error)
            return None, error

        items = result.get("data", {}).get("items", []) if isinstance(result.get("data"), dict) else []
        if not items:
            return None, None

        for pod in items:
            if pod.get("status", {}).get("phase") == "Running":
                return pod.get("metadata", {}).get("name"), None

        return items[0].get("metadata", {}).get("name"), None

    async def exec_in_pod(
        self,
        namespace: str,
        pod_name: str,
        command: List[str],
        timeout: Optional[int] = None
    ) -> Dict:
        """在 Pod 内执行命令 (不缓存)"""
        cmd = self.kubectl_cmd + ["exec", "-n", namespace, pod_name, "--"] + list(command)
        return await self.run(cmd, timeout=timeout, use_cache=False)

    # === 缓存管理方法 ===

    def get_cache_stats(self) -> Optional[Dict]:
        """获取缓存统计信息，未启用缓存返回 None"""
        if self.cache:
            return self.cache.get_stats()
        return None

    def clear_cache(self):
        if self.cache:
            self.cache.clear()
