"""
kubectl 响应缓存

单次运行内多个检查会读取同一份资源列表 (例如 `get pods -A`)，
缓存成功的响应避免重复调用 kubectl。

特性:
- 自动过期 (TTL)
- LRU 淘汰策略
- 线程安全 (kubectl 在工作线程中执行)
"""

import hashlib
import json
import threading
import time
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple


class K8sCache:
    """kubectl 响应缓存

    Example:
        cache = K8sCache(ttl_seconds=60, max_size=64)
        key = cache.generate_key("kubectl get pods -A -o json")
        if cache.get(key) is None:
            cache.set(key, await client.run(cmd))
    """

    def __init__(self, ttl_seconds: float = 60, max_size: int = 64):
        """
        Args:
            ttl_seconds: 缓存过期时间 (秒, 默认 60)
            max_size: 最大缓存条目数 (默认 64)
        """
        self.ttl = ttl_seconds
        self.max_size = max_size

        # key -> (data, monotonic timestamp)
        self._cache: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.RLock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def generate_key(command: str, **kwargs) -> str:
        """将命令行和参数序列化为 MD5 哈希"""
        key_str = json.dumps({"command": command, "params": kwargs}, sort_keys=True)
        return hashlib.md5(key_str.encode()).hexdigest()

    def get(self, key: str) -> Optional[Any]:
        """获取缓存值，不存在或已过期返回 None"""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            data, stored_at = entry
            if time.monotonic() - stored_at > self.ttl:
                del self._cache[key]
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return data

    def set(self, key: str, data: Any):
        with self._lock:
            if key in self._cache:
                del self._cache[key]

            self._cache[key] = (data, time.monotonic())

            if len(self._cache) > self.max_size:
                self._cache.popitem(last=False)
                self._evictions += 1

    def clear(self):
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def get_stats(self) -> Dict[str, Any]:
        """缓存统计信息"""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": self._hits / total if total > 0 else 0.0,
                "ttl_seconds": self.ttl,
            }

    def __len__(self) -> int:
        return len(self._cache)

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"K8sCache(size={stats['size']}/{stats['max_size']}, "
            f"hit_rate={stats['hit_rate']:.1%}, "
            f"ttl={stats['ttl_seconds']}s)"
        )
