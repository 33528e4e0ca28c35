from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from xml.etree import ElementTree as ET

from app.core.exceptions import R2RequestError
from app.core.logger import logger
from app.infra.storage.r2_env import R2ResolvedEnvironment, build_object_public_url, parse_boolean
from app.schemas.storage.r2_schemas import R2ErrorInfo, R2ListResponse, R2ObjectSummary


def _local_name(tag: str) -> str:
    # S3 的响应带 xmlns="http://s3.amazonaws.com/doc/2006-03-01/"
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str, strip: bool = True) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name:
            text = child.text or ""
            return text.strip() if strip else text
    return None


def _children(element: ET.Element, name: str):
    return [child for child in element if _local_name(child.tag) == name]


def _parse_int(value: Optional[str]) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def normalise_date(value: Optional[str]) -> Optional[str]:
    """解析时间字符串并统一为 YYYY-MM-DDTHH:MM:SS.sssZ，无法解析时返回 None。"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def _log_list_parse_failure(env: R2ResolvedEnvironment, reason: str) -> None:
    logger.bind(method="GET", bucket=env.config.bucket_name).error(
        f"[R2 Driver] 请求失败：列表结果无法解析 | method=GET, bucket={env.config.bucket_name}, reason={reason}"
    )


def parse_list_objects_response(env: R2ResolvedEnvironment, xml: str) -> R2ListResponse:
    """
    解析 ListObjectsV2 的 ListBucketResult。
    没有 Contents 时返回空列表；缺少根元素视为解析失败。
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        _log_list_parse_failure(env, str(e))
        raise R2RequestError("无法解析 R2 返回结果", details=xml) from e

    if _local_name(root.tag) != "ListBucketResult":
        _log_list_parse_failure(env, f"unexpected root element <{_local_name(root.tag)}>")
        raise R2RequestError("无法解析 R2 返回结果", details=xml)

    objects = []
    for entry in _children(root, "Contents"):
        # 对象键保持原样，首尾空白也是键的一部分
        key = _child_text(entry, "Key", strip=False)
        if not key:
            continue
        etag = _child_text(entry, "ETag")
        objects.append(R2ObjectSummary(
            key=key,
            size=_parse_int(_child_text(entry, "Size")),
            last_modified=normalise_date(_child_text(entry, "LastModified")),
            etag=etag.replace('"', "") if etag else None,
            public_url=build_object_public_url(env, key),
        ))

    return R2ListResponse(
        objects=objects,
        has_more=parse_boolean(_child_text(root, "IsTruncated")),
        continuation_token=_child_text(root, "NextContinuationToken") or None,
    )


def parse_error_response(body: str) -> Optional[R2ErrorInfo]:
    """尽力解析 <Error> 响应体，失败时返回 None，从不抛出异常。"""
    if not body:
        return None
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        logger.debug(f"[R2 Driver] Failed to parse error response: {e}")
        return None

    if _local_name(root.tag) != "Error":
        return None

    return R2ErrorInfo(
        code=_child_text(root, "Code") or None,
        message=_child_text(root, "Message") or None,
        resource=_child_text(root, "Resource") or None,
        request_id=_child_text(root, "RequestId") or None,
    )
