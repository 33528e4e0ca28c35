import re
import time
from typing import TYPE_CHECKING, Iterable, Optional

from app.core.exceptions import InvalidObjectKeyError

if TYPE_CHECKING:
    from app.infra.storage.r2_env import R2ResolvedEnvironment


_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _strip_control_chars(value: str) -> str:
    return _CONTROL_CHARS.sub("", value)


def sanitize_key_segment(segment: str) -> Optional[str]:
    """
    清洗单个路径段。返回 None 表示该段应被丢弃。

    控制字符先于 "." / ".." 判断被移除，
    因此 ".\\x00." 这类输入同样会被识别为 ".." 而丢弃。
    """
    cleaned = _strip_control_chars(segment or "").strip().strip("/").strip()
    if not cleaned or cleaned in (".", ".."):
        return None
    return cleaned


def sanitize_key_prefix(value: Optional[str]) -> str:
    if not value:
        return ""
    parts = (sanitize_key_segment(part) for part in value.replace("\\", "/").split("/"))
    return "/".join(part for part in parts if part)


def sanitize_file_name(value: Optional[str]) -> str:
    """
    只保留文件名的最后一段；无法得到合法文件名时退回 asset-{毫秒时间戳}。
    """
    fallback = f"asset-{int(time.time() * 1000)}"
    if not value:
        return fallback
    base = value.replace("\\", "/").split("/")[-1]
    cleaned = _strip_control_chars(base).strip()
    if not cleaned or cleaned in (".", ".."):
        return fallback
    return cleaned


def join_key_parts(parts: Iterable[Optional[str]]) -> str:
    """把 基础前缀 / 目录 / 文件名 拼接为最终对象键，空段会被跳过。"""
    sanitized = (sanitize_key_prefix(part or "") for part in parts)
    return "/".join(part for part in sanitized if part)


def ensure_key_within_prefix(env: "R2ResolvedEnvironment", key: Optional[str]) -> str:
    """
    重新清洗调用方传入的对象键，并确认它仍位于配置的基础前缀之下。

    :raises InvalidObjectKeyError: 键为空、清洗后为空或超出前缀范围
    """
    stripped = (key or "").replace("\\", "/").lstrip("/").strip()
    if not stripped:
        raise InvalidObjectKeyError("对象键不能为空")

    normalised = sanitize_key_prefix(stripped)
    if not normalised:
        raise InvalidObjectKeyError("对象键不合法")

    base_prefix = env.config.base_prefix
    if base_prefix and normalised != base_prefix and not normalised.startswith(f"{base_prefix}/"):
        raise InvalidObjectKeyError("对象键超出允许的前缀范围")
    return normalised
