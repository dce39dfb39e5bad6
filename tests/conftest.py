"""
测试公共夹具 - 模拟 kubectl 客户端与集群数据
"""

import copy

import pytest

from k8s_health_checker.config import HealthCheckConfig


DF_OUTPUT_TEMPLATE = """Filesystem      Size  Used Avail Use% Mounted on
overlay          98G   40G   58G  41% /
tmpfs            64M     0   64M   0% /dev
/dev/rbd0        50G   {used}G   {avail}G  {percent}% /storage
"""


def df_output(percent: int) -> str:
    return DF_OUTPUT_TEMPLATE.format(used=percent // 2, avail=50 - percent // 2, percent=percent)


def ok(data):
    return {"success": True, "data": data, "error": "", "cmd": "kubectl"}


def fail(error):
    return {"success": False, "error": error, "cmd": "kubectl"}


def make_node(name, ready="True", cpu="4", memory="8Gi", pods="110", gpu=None):
    allocatable = {"cpu": cpu, "memory": memory, "pods": pods}
    capacity = dict(allocatable)
    if gpu is not None:
        allocatable["nvidia.com/gpu"] = str(gpu)
        capacity["nvidia.com/gpu"] = str(gpu)
    return {
        "metadata": {"name": name},
        "status": {
            "conditions": [
                {"type": "MemoryPressure", "status": "False"},
                {"type": "Ready", "status": ready},
            ],
            "allocatable": allocatable,
            "capacity": capacity,
        },
    }


def make_pod(namespace, name, phase="Running", node="n1", cpu="500m", memory="1Gi", gpu=None):
    requests = {}
    if cpu:
        requests["cpu"] = cpu
    if memory:
        requests["memory"] = memory
    if gpu:
        requests["nvidia.com/gpu"] = str(gpu)
    return {
        "metadata": {"namespace": namespace, "name": name},
        "spec": {
            "nodeName": node,
            "containers": [{"name": "main", "resources": {"requests": requests}}],
        },
        "status": {"phase": phase},
    }


def make_deployment(namespace, name, replicas=2, ready=2, available=2):
    return {
        "metadata": {"namespace": namespace, "name": name},
        "spec": {"replicas": replicas},
        "status": {"readyReplicas": ready, "availableReplicas": available},
    }


def make_service(namespace, name, service_type="ClusterIP"):
    return {"metadata": {"namespace": namespace, "name": name}, "spec": {"type": service_type}}


def make_endpoints(namespace, name, addresses=1):
    subsets = []
    if addresses:
        subsets.append({"addresses": [{"ip": f"10.0.0.{i + 1}"} for i in range(addresses)]})
    return {"metadata": {"namespace": namespace, "name": name}, "subsets": subsets}


def make_volume(name, phase, namespace=None):
    metadata = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    return {"metadata": metadata, "status": {"phase": phase}}


def make_ingress(namespace, name, services):
    return {
        "metadata": {"namespace": namespace, "name": name},
        "spec": {
            "rules": [{
                "host": "app.example.com",
                "http": {"paths": [
                    {"path": "/", "backend": {"service": {"name": svc, "port": {"number": 80}}}}
                    for svc in services
                ]},
            }],
        },
    }


def items(*objects):
    return {"items": list(objects)}


def healthy_responses():
    """一个全部健康的小集群"""
    return {
        "cluster_info": ok("Kubernetes control plane is running"),
        "nodes": ok(items(make_node("n1"))),
        "pods": ok(items(
            make_pod("default", "web-1"),
            make_pod("default", "web-2"),
        )),
        "pods:kube-system": ok(items(
            make_pod("kube-system", "coredns-5d78c9869d-8xk2p"),
            make_pod("kube-system", "coredns-5d78c9869d-q4wzt"),
            make_pod("kube-system", "kube-proxy-7hs9d"),
        )),
        "deployments": ok(items(make_deployment("default", "web"))),
        "services": ok(items(
            make_service("default", "web"),
            make_service("default", "ext", "ExternalName"),
        )),
        "endpoints": ok(items(make_endpoints("default", "web"))),
        "pvs": ok(items(make_volume("pv-1", "Bound"))),
        "pvcs": ok(items(make_volume("data", "Bound", namespace="default"))),
        "ingresses": ok(items(make_ingress("default", "web", ["web"]))),
        "events": ok(items()),
    }


class FakeKubectl:
    """模拟 KubectlWrapper 的接口

    responses: 资源名 → 结果字典 (指定命名空间的 Pod 列表为 "pods:<namespace>")
    pods: (namespace, selector) → Pod 名称
    exec_results: Pod 名称 → 结果字典
    raise_on: 调用时直接抛出异常的资源名集合
    pod_errors: 命名空间 → 查找 Pod 时的 kubectl 错误
    """

    def __init__(self, responses=None, pods=None, exec_results=None, raise_on=(), pod_errors=None):
        self.responses = healthy_responses()
        self.responses.update(responses or {})
        self.pods = {
            ("rook-ceph", "app=rook-ceph-tools"): "rook-ceph-tools-1",
            ("harbor", "app=harbor,component=registry"): "harbor-registry-1",
            ("minio", "app.kubernetes.io/name=minio"): "minio-0",
        }
        self.pods.update(pods or {})
        self.exec_results = {
            "rook-ceph-tools-1": ok({"health": {"status": "HEALTH_OK"}}),
            "harbor-registry-1": ok(df_output(42)),
            "minio-0": ok(df_output(55)),
        }
        self.exec_results.update(exec_results or {})
        self.raise_on = set(raise_on)
        self.pod_errors = dict(pod_errors or {})
        self.calls = []

    async def _respond(self, resource):
        self.calls.append(resource)
        if resource in self.raise_on:
            raise RuntimeError(f"boom: {resource}")
        return copy.deepcopy(self.responses.get(resource, fail(f"no response for {resource}")))

    async def cluster_info(self):
        return await self._respond("cluster_info")

    async def current_context(self):
        if "current_context" in self.raise_on:
            raise RuntimeError("boom: current_context")
        return ok("test-context")

    async def get_nodes(self):
        return await self._respond("nodes")

    async def get_pods(self, namespace=None, selector=None):
        return await self._respond(f"pods:{namespace}" if namespace else "pods")

    async def get_deployments(self):
        return await self._respond("deployments")

    async def get_services(self):
        return await self._respond("services")

    async def get_endpoints(self):
        return await self._respond("endpoints")

    async def get_pvs(self):
        return await self._respond("pvs")

    async def get_pvcs(self):
        return await self._respond("pvcs")

    async def get_ingresses(self):
        return await self._respond("ingresses")

    async def get_events(self):
        return await self._respond("events")

    async def find_pod(self, namespace, selector):
        self.calls.append(f"find_pod:{namespace}")
        if "find_pod" in self.raise_on:
            raise RuntimeError("boom: find_pod")
        if namespace in self.pod_errors:
            return None, self.pod_errors[namespace]
        return self.pods.get((namespace, selector)), None

    async def exec_in_pod(self, namespace, pod_name, command, timeout=None):
        self.calls.append(f"exec:{pod_name}")
        return copy.deepcopy(self.exec_results.get(pod_name, fail("pod not found")))


@pytest.fixture
def make_client():
    """构造 FakeKubectl，参数覆盖默认的健康集群"""
    return FakeKubectl


@pytest.fixture
def config():
    """不含 URL 的默认配置"""
    return HealthCheckConfig()
