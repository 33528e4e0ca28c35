import os
from typing import List, Optional, Sequence
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict

from app.core.exceptions import R2ConfigurationError
from app.infra.storage.key_sanitizer import sanitize_key_prefix
from app.infra.storage.sigv4 import uri_encode

R2_HOST_SUFFIX = "r2.cloudflarestorage.com"
DEFAULT_BASE_PREFIX = "question-images"

ACCOUNT_ID_KEYS = ("CF_R2_ACCOUNT_ID", "R2_ACCOUNT_ID")
ACCESS_KEY_ID_KEYS = ("CF_R2_ACCESS_KEY_ID", "R2_ACCESS_KEY_ID")
SECRET_ACCESS_KEY_KEYS = ("CF_R2_SECRET_ACCESS_KEY", "R2_SECRET_ACCESS_KEY")
BUCKET_NAME_KEYS = ("CF_R2_BUCKET_NAME", "R2_BUCKET_NAME")
PUBLIC_BASE_URL_KEYS = ("CF_R2_PUBLIC_BASE_URL", "R2_PUBLIC_BASE_URL")
BASE_PREFIX_KEYS = ("CF_R2_BASE_PREFIX", "R2_BASE_PREFIX")
PROXY_URL_KEYS = ("CF_R2_HTTP_PROXY", "R2_HTTP_PROXY", "HTTP_PROXY", "http_proxy")
DISABLE_PROXY_KEYS = ("CF_R2_DISABLE_PROXY", "R2_DISABLE_PROXY")


class R2EnvConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str = ""
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket_name: str = ""
    public_base_url: str = ""
    base_prefix: str = ""


class R2ResolvedEnvironment(BaseModel):
    """
    由环境变量推导出的一次性运行环境。每次调用都会重新计算，不做跨调用缓存，
    这样长期运行的进程在环境变化后无需重启。
    """
    model_config = ConfigDict(frozen=True)

    config: R2EnvConfig
    endpoint: str = ""
    hostname: str = ""
    public_base_url: str = ""
    configured: bool = False
    missing: List[str] = []


def read_env_value(keys: Sequence[str]) -> str:
    """按顺序读取多个别名，返回第一个非空（去除首尾空白后）的值。"""
    for key in keys:
        raw = os.environ.get(key)
        if raw and raw.strip():
            return raw.strip()
    return ""


def parse_boolean(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def resolve_r2_environment() -> R2ResolvedEnvironment:
    account_id = read_env_value(ACCOUNT_ID_KEYS)
    access_key_id = read_env_value(ACCESS_KEY_ID_KEYS)
    secret_access_key = read_env_value(SECRET_ACCESS_KEY_KEYS)
    bucket_name = read_env_value(BUCKET_NAME_KEYS)
    raw_public_base = read_env_value(PUBLIC_BASE_URL_KEYS)
    prefix_candidate = read_env_value(BASE_PREFIX_KEYS)

    missing = []
    if not account_id:
        missing.append(ACCOUNT_ID_KEYS[0])
    if not access_key_id:
        missing.append(ACCESS_KEY_ID_KEYS[0])
    if not secret_access_key:
        missing.append(SECRET_ACCESS_KEY_KEYS[0])
    if not bucket_name:
        missing.append(BUCKET_NAME_KEYS[0])

    endpoint = f"https://{account_id}.{R2_HOST_SUFFIX}" if account_id else ""
    base_prefix = sanitize_key_prefix(prefix_candidate or DEFAULT_BASE_PREFIX)

    public_base_candidate = raw_public_base
    if not public_base_candidate and endpoint and bucket_name:
        public_base_candidate = f"{endpoint}/{bucket_name}"
    public_base_url = public_base_candidate.rstrip("/")

    return R2ResolvedEnvironment(
        config=R2EnvConfig(
            account_id=account_id,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            bucket_name=bucket_name,
            public_base_url=public_base_url,
            base_prefix=base_prefix,
        ),
        endpoint=endpoint,
        hostname=urlsplit(endpoint).netloc if endpoint else "",
        public_base_url=public_base_url,
        configured=not missing,
        missing=missing,
    )


def ensure_r2_environment() -> R2ResolvedEnvironment:
    env = resolve_r2_environment()
    if not env.configured:
        raise R2ConfigurationError("Cloudflare R2 尚未配置完成", missing=env.missing)
    return env


def build_object_public_url(env: R2ResolvedEnvironment, key: str) -> Optional[str]:
    """{public_base_url}/{逐段编码的 key}；未配置公开地址时返回 None。"""
    if not env.public_base_url:
        return None
    encoded = "/".join(uri_encode(segment) for segment in key.split("/"))
    return f"{env.public_base_url}/{encoded}"


def resolve_proxy_url() -> Optional[str]:
    """返回应使用的正向代理地址；显式禁用或未配置时返回 None。"""
    if parse_boolean(read_env_value(DISABLE_PROXY_KEYS)):
        return None
    return read_env_value(PROXY_URL_KEYS) or None
