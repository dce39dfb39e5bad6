"""
渲染器的统一输入
"""

from datetime import datetime
from typing import List, NamedTuple, Optional

from ..collectors.models import CheckResult, NodeResourceSample, Summary
from ..result_store import ResultStore


class ReportData(NamedTuple):
    """渲染器输入：汇总、检查结果 (规范顺序) 与节点资源快照"""

    summary: Summary
    results: List[CheckResult]
    node_samples: List[NodeResourceSample]
    timestamp: datetime
    context: Optional[str] = None
    duration_seconds: Optional[float] = None

    @classmethod
    def from_store(
        cls,
        store: ResultStore,
        timestamp: datetime,
        context: Optional[str] = None,
        duration_seconds: Optional[float] = None
    ) -> "ReportData":
        return cls(
            summary=store.summary(),
            results=store.results(),
            node_samples=store.node_samples(),
            timestamp=timestamp,
            context=context,
            duration_seconds=duration_seconds,
        )
