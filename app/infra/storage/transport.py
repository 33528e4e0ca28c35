from datetime import datetime, timezone
from typing import Mapping, Optional, Tuple

import httpx

from app.config.settings import settings
from app.core.exceptions import R2RequestError
from app.core.logger import logger
from app.infra.storage.r2_env import R2ResolvedEnvironment, resolve_proxy_url
from app.infra.storage.sigv4 import Body, sign_request, to_bytes
from app.infra.storage.xml_parsers import parse_error_response


def build_proxy(proxy_url: Optional[str]) -> Tuple[Optional[httpx.AsyncBaseTransport], Optional[Exception]]:
    """
    构造走正向代理的 transport。返回 (transport, error)，由调用方决定如何处理 error。

    SOCKS 代理在缺少 socksio 时于构造 transport 阶段抛出 ImportError，同样归为 error。
    """
    if not proxy_url:
        return None, None
    try:
        return httpx.AsyncHTTPTransport(proxy=proxy_url), None
    except (ImportError, ValueError, httpx.InvalidURL) as e:
        return None, e


def _build_client(transport: Optional[httpx.AsyncBaseTransport]) -> Tuple[httpx.AsyncClient, Optional[str]]:
    timeout = httpx.Timeout(
        settings.r2.read_timeout,
        connect=settings.r2.connect_timeout,
    )
    if transport is not None:
        return httpx.AsyncClient(transport=transport, timeout=timeout, trust_env=False), None

    proxy_url = resolve_proxy_url()
    proxy_transport, error = build_proxy(proxy_url)
    if error is not None:
        # 代理构造失败不影响主流程，直接连接
        logger.warning(f"[R2 Driver] 代理初始化失败，改为直接连接: {error!r}")
        proxy_url = None
    return httpx.AsyncClient(transport=proxy_transport, timeout=timeout, trust_env=False), proxy_url


async def send_r2_request(
        env: R2ResolvedEnvironment,
        method: str,
        key: Optional[str] = None,
        query: Optional[Mapping[str, Optional[str]]] = None,
        headers: Optional[Mapping[str, Optional[str]]] = None,
        body: Body = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """
    签名并发送一次请求。非 2xx 或网络失败时抛出 R2RequestError，不做重试。
    """
    body_bytes = to_bytes(body)
    signed = sign_request(
        method=method,
        hostname=env.hostname,
        bucket=env.config.bucket_name,
        access_key_id=env.config.access_key_id,
        secret_access_key=env.config.secret_access_key,
        now=datetime.now(timezone.utc),
        key=key,
        query=query,
        headers=headers,
        body=body_bytes,
    )

    url = f"{env.endpoint}{signed.canonical_uri}"
    if signed.canonical_query:
        url = f"{url}?{signed.canonical_query}"

    client, proxy_url = _build_client(transport)
    try:
        async with client:
            response = await client.request(
                method,
                url,
                headers=signed.headers,
                content=body_bytes or None,
            )
    except httpx.HTTPError as e:
        logger.bind(method=method, key=key, proxy=proxy_url).error(
            f"[R2 Driver] 请求失败：无法连接 | method={method}, key={key}, message={e}, proxy={proxy_url}"
        )
        raise R2RequestError("无法连接到 Cloudflare R2", details=e) from e

    if not response.is_success:
        error_body = response.text
        error_info = parse_error_response(error_body)
        error_code = error_info.code if error_info else None
        error_message = error_info.message if error_info and error_info.message else None
        logger.bind(method=method, key=key, status=response.status_code, code=error_code).error(
            f"[R2 Driver] 请求失败：响应异常 | method={method}, key={key}, "
            f"status={response.status_code}, code={error_code}, message={error_message or error_body}"
        )
        raise R2RequestError(
            error_message or "Cloudflare R2 请求失败",
            status=response.status_code,
            error_code=error_code,
            details=error_info or error_body,
        )

    return response
