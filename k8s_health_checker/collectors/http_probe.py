"""
外部 URL 连通性探测 (requests)

requests 的 timeout 是 (连接超时, 读取超时)，并不限制总耗时；
总耗时由 probe_url 的 total_timeout 限制，编排器的 check_timeout 兜底。
"""

import asyncio
import logging
from typing import NamedTuple, Optional

import requests

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 10
READ_TIMEOUT = 30
TOTAL_TIMEOUT = 30


class UrlProbeResult(NamedTuple):
    """URL 探测结果

    status_code 为 None 表示未收到 HTTP 响应 (超时、DNS、连接拒绝等)
    """
    url: str
    status_code: Optional[int]
    elapsed: Optional[float] = None
    error: Optional[str] = None


def probe_url_sync(
    url: str,
    connect_timeout: float = CONNECT_TIMEOUT,
    read_timeout: float = READ_TIMEOUT,
    verify_tls: bool = True
) -> UrlProbeResult:
    """发送一次 GET 请求，不跟随重定向，只读取响应头，传输错误不抛出"""
    try:
        response = requests.get(
            url,
            timeout=(connect_timeout, read_timeout),
            allow_redirects=False,
            stream=True,
            verify=verify_tls,
        )
    except requests.exceptions.Timeout as e:
        logger.warning("URL 请求超时 %s: %s", url, e)
        return UrlProbeResult(url=url, status_code=None, error=f"timeout: {e}")
    except requests.exceptions.RequestException as e:
        logger.warning("URL 请求失败 %s: %s", url, e)
        return UrlProbeResult(url=url, status_code=None, error=str(e))

    response.close()
    return UrlProbeResult(
        url=url,
        status_code=response.status_code,
        elapsed=round(response.elapsed.total_seconds(), 3),
    )


async def probe_url(
    url: str,
    connect_timeout: float = CONNECT_TIMEOUT,
    read_timeout: float = READ_TIMEOUT,
    total_timeout: float = TOTAL_TIMEOUT,
    verify_tls: bool = True
) -> UrlProbeResult:
    """probe_url_sync 的异步版本 (在工作线程中执行)，总耗时不超过 total_timeout"""
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(probe_url_sync, url, connect_timeout, read_timeout, verify_tls),
            timeout=total_timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("URL 请求超过总时限 %ss: %s", total_timeout, url)
        return UrlProbeResult(url=url, status_code=None, error=f"timeout: exceeded {total_timeout:g}s")
