"""
AWS Signature Version 4 请求签名。

只依赖标准库的 hashlib / hmac，所有函数都是纯函数：
时间戳作为参数传入，相同输入总是得到逐字节相同的 Authorization。
"""
import hashlib
import hmac
import re
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Tuple, Union
from urllib.parse import quote

from pydantic import BaseModel

AWS_REGION = "auto"
AWS_SERVICE = "s3"
SIGNING_ALGORITHM = "AWS4-HMAC-SHA256"

Body = Union[bytes, bytearray, memoryview, str, None]

_WHITESPACE = re.compile(r"\s+")


class SignedRequest(BaseModel):
    method: str
    canonical_uri: str
    canonical_query: str
    headers: Dict[str, str]
    signed_headers: str
    canonical_request: str
    string_to_sign: str
    signature: str
    authorization: str
    payload_hash: str


def to_bytes(data: Body) -> bytes:
    if not data:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hmac_sha256(key: bytes, data: str) -> bytes:
    return hmac.new(key, data.encode("utf-8"), hashlib.sha256).digest()


def uri_encode(value: str) -> str:
    """RFC 3986 编码：只保留 A-Z a-z 0-9 - _ . ~ 不转义。"""
    return quote(value, safe="")


def format_amz_date(now: datetime) -> Tuple[str, str]:
    """返回 (amz_date, date_stamp)，如 ("20240102T030405Z", "20240102")。"""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    amz_date = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return amz_date, amz_date[:8]


def build_canonical_query(query: Optional[Mapping[str, Optional[str]]]) -> str:
    pairs = [
        (uri_encode(str(key)), uri_encode(str(value)))
        for key, value in (query or {}).items()
        if value is not None and value != ""
    ]
    pairs.sort(key=lambda pair: pair[0])
    return "&".join(f"{key}={value}" for key, value in pairs)


def encode_key_path(bucket: str, key: Optional[str] = None) -> str:
    bucket_segment = uri_encode(bucket)
    if not key:
        return f"/{bucket_segment}"
    segments = "/".join(uri_encode(segment) for segment in key.split("/"))
    return f"/{bucket_segment}/{segments}"


def build_canonical_headers(hostname: str, extra: Mapping[str, str]) -> Tuple[str, str]:
    """返回 (canonical_headers, signed_headers)。"""
    merged: Dict[str, str] = {"host": hostname}
    for name, value in extra.items():
        merged[name.lower()] = value

    entries = sorted(
        (name, _WHITESPACE.sub(" ", value.strip())) for name, value in merged.items()
    )
    canonical_headers = "".join(f"{name}:{value}\n" for name, value in entries)
    signed_headers = ";".join(name for name, _ in entries)
    return canonical_headers, signed_headers


def build_signing_key(secret: str, date_stamp: str) -> bytes:
    k_date = hmac_sha256(f"AWS4{secret}".encode("utf-8"), date_stamp)
    k_region = hmac_sha256(k_date, AWS_REGION)
    k_service = hmac_sha256(k_region, AWS_SERVICE)
    return hmac_sha256(k_service, "aws4_request")


def sign_request(
        *,
        method: str,
        hostname: str,
        bucket: str,
        access_key_id: str,
        secret_access_key: str,
        now: datetime,
        key: Optional[str] = None,
        query: Optional[Mapping[str, Optional[str]]] = None,
        headers: Optional[Mapping[str, Optional[str]]] = None,
        body: Body = None,
) -> SignedRequest:
    payload_hash = sha256_hex(to_bytes(body))
    amz_date, date_stamp = format_amz_date(now)

    additional_headers = {
        name: value for name, value in (headers or {}).items()
        if value is not None and value != ""
    }

    canonical_uri = encode_key_path(bucket, key)
    canonical_query = build_canonical_query(query)
    canonical_headers, signed_headers = build_canonical_headers(hostname, {
        "x-amz-content-sha256": payload_hash,
        "x-amz-date": amz_date,
        **additional_headers,
    })

    canonical_request = "\n".join([
        method,
        canonical_uri,
        canonical_query,
        canonical_headers,
        signed_headers,
        payload_hash,
    ])

    scope = f"{date_stamp}/{AWS_REGION}/{AWS_SERVICE}/aws4_request"
    string_to_sign = "\n".join([
        SIGNING_ALGORITHM,
        amz_date,
        scope,
        sha256_hex(canonical_request.encode("utf-8")),
    ])

    signing_key = build_signing_key(secret_access_key, date_stamp)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    authorization = (
        f"{SIGNING_ALGORITHM} Credential={access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )

    request_headers = {
        "x-amz-content-sha256": payload_hash,
        "x-amz-date": amz_date,
        "authorization": authorization,
    }
    for name, value in additional_headers.items():
        request_headers[name.lower()] = value

    return SignedRequest(
        method=method,
        canonical_uri=canonical_uri,
        canonical_query=canonical_query,
        headers=request_headers,
        signed_headers=signed_headers,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
        signature=signature,
        authorization=authorization,
        payload_hash=payload_hash,
    )
