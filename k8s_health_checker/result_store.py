"""
检查结果存储

单次运行内的全部 CheckResult 与节点资源快照。
由编排器创建并持有，每个检查写入自己的键，后写覆盖先写。
"""

from typing import Dict, List, Optional

from .collectors.models import (
    CHECK_ORDER,
    CheckResult,
    NodeResourceSample,
    Status,
    Summary,
)


class ResultStore:
    """检查结果存储

    Example:
        store = ResultStore()
        store.record("nodes", Status.SUCCESS, "全部 3 个节点 Ready")
        summary = store.summary()
    """

    def __init__(self, order: Optional[List[str]] = None):
        self.order = list(order) if order is not None else list(CHECK_ORDER)
        self._results: Dict[str, CheckResult] = {}
        self._samples: Dict[str, NodeResourceSample] = {}

    def record(
        self,
        name: str,
        status: Status,
        details: str = "",
        explanation: Optional[str] = None
    ) -> CheckResult:
        """写入 (或覆盖) 一个检查结果"""
        result = CheckResult(
            name=name,
            status=Status(status),
            details=details,
            explanation=explanation,
        )
        return self.add(result)

    def add(self, result: CheckResult) -> CheckResult:
        self._results[result.name] = result
        return result

    def get(self, name: str) -> Optional[CheckResult]:
        return self._results.get(name)

    def results(self) -> List[CheckResult]:
        """按规范顺序返回结果，未在规范顺序中的检查按写入顺序排在最后"""
        ordered = [self._results[name] for name in self.order if name in self._results]
        extra = [result for name, result in self._results.items() if name not in self.order]
        return ordered + extra

    def names_with_status(self, status: Status) -> List[str]:
        return [result.name for result in self.results() if result.status == status]

    def summary(self) -> Summary:
        return Summary.from_statuses(result.status for result in self._results.values())

    def record_node_sample(self, sample: NodeResourceSample):
        self._samples[sample.name] = sample

    def node_samples(self) -> List[NodeResourceSample]:
        return [self._samples[name] for name in sorted(self._samples)]

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, name: str) -> bool:
        return name in self._results
