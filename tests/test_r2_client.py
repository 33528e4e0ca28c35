import hashlib
import re
from datetime import datetime, timezone

import httpx
import pytest

from app.core.exceptions import InvalidObjectKeyError, R2ConfigurationError, R2RequestError
from app.infra.storage.r2_client import R2StorageClient
from app.infra.storage.sigv4 import sign_request

pytestmark = pytest.mark.anyio

LIST_XML = """<?xml version="1.0" encoding="UTF-8"?>
<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">
  <IsTruncated>false</IsTruncated>
  <Contents>
    <Key>imgs/sub/a.png</Key>
    <LastModified>2024-05-01T10:20:30.000Z</LastModified>
    <ETag>"etag-a"</ETag>
    <Size>12</Size>
  </Contents>
</ListBucketResult>
"""


def assert_signature_verifies(request: httpx.Request, secret: str = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"):
    """按服务端的方式重新计算签名，并与请求携带的 Authorization 对比。"""
    amz_date = request.headers["x-amz-date"]
    now = datetime.strptime(amz_date, "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
    path = request.url.path
    _, bucket, *rest = path.split("/", 2)
    extra = {}
    if "content-type" in request.headers:
        extra["content-type"] = request.headers["content-type"]

    expected = sign_request(
        method=request.method,
        hostname=request.url.host,
        bucket=bucket,
        access_key_id="AKIDEXAMPLE",
        secret_access_key=secret,
        now=now,
        key=rest[0] if rest else None,
        query=dict(request.url.params),
        headers=extra,
        body=request.content,
    )
    assert request.headers["authorization"] == expected.authorization


async def test_unconfigured_client_never_touches_the_network(clean_env, recorder):
    handler = recorder()
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    assert client.get_status_summary().configured is False

    with pytest.raises(R2ConfigurationError) as exc_info:
        await client.upload_object("a.png", b"x")
    assert "CF_R2_ACCOUNT_ID" in exc_info.value.missing

    with pytest.raises(R2ConfigurationError):
        await client.list_objects()
    with pytest.raises(R2ConfigurationError):
        await client.delete_object("question-images/a.png")

    assert handler.requests == []


async def test_upload_strips_traversal_and_signs_put(configured_env, recorder):
    handler = recorder(httpx.Response(200, headers={"ETag": '"d41d8cd9"'}))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    result = await client.upload_object("../../etc/passwd", b"x")

    assert result.key == "imgs/passwd"
    assert result.etag == "d41d8cd9"
    assert result.public_url == "https://acct1.r2.cloudflarestorage.com/files/imgs/passwd"
    assert client.build_public_url(result.key) == result.public_url

    (request,) = handler.requests
    assert request.method == "PUT"
    assert str(request.url) == "https://acct1.r2.cloudflarestorage.com/files/imgs/passwd"
    assert request.content == b"x"
    assert request.headers["x-amz-content-sha256"] == hashlib.sha256(b"x").hexdigest()
    assert request.headers["authorization"].startswith(
        "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/"
    )
    assert_signature_verifies(request)


async def test_upload_with_folder_and_content_type(configured_env, recorder):
    configured_env.setenv("CF_R2_PUBLIC_BASE_URL", "https://cdn.example.com/")
    handler = recorder(httpx.Response(200))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    result = await client.upload_object(
        "第 1 题.png", "图片内容", folder="/2024/../chapter 1/", content_type="image/png"
    )

    assert result.key == "imgs/2024/chapter 1/第 1 题.png"
    assert result.etag is None
    assert result.public_url == (
        "https://cdn.example.com/imgs/2024/chapter%201/%E7%AC%AC%201%20%E9%A2%98.png"
    )

    (request,) = handler.requests
    assert request.headers["content-type"] == "image/png"
    assert "content-type;host;x-amz-content-sha256;x-amz-date" in request.headers["authorization"]
    assert_signature_verifies(request)


async def test_upload_with_blank_file_name_uses_fallback(configured_env, recorder):
    handler = recorder(httpx.Response(200))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    result = await client.upload_object("   ", b"x")

    assert re.fullmatch(r"imgs/asset-\d+", result.key)


@pytest.mark.parametrize("limit, expected", [(None, "50"), (0, "1"), (-5, "1"), (20, "20"), (1000, "500")])
async def test_list_clamps_limit(configured_env, recorder, limit, expected):
    handler = recorder(httpx.Response(200, text=LIST_XML))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    await client.list_objects(limit=limit)

    (request,) = handler.requests
    assert request.url.params["max-keys"] == expected


async def test_list_sends_signed_query_and_parses_result(configured_env, recorder):
    handler = recorder(httpx.Response(200, text=LIST_XML))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    result = await client.list_objects(prefix="../sub", continuation_token="tok/en==")

    (request,) = handler.requests
    assert request.method == "GET"
    assert request.url.path == "/files"
    assert dict(request.url.params) == {
        "continuation-token": "tok/en==",
        "list-type": "2",
        "max-keys": "50",
        "prefix": "imgs/sub",
    }
    assert_signature_verifies(request)

    assert [item.key for item in result.objects] == ["imgs/sub/a.png"]
    assert result.objects[0].etag == "etag-a"
    assert result.has_more is False
    assert result.continuation_token is None


async def test_provider_error_is_raised_with_status_and_code(configured_env, recorder):
    error_xml = "<Error><Code>AccessDenied</Code><Message>Access Denied</Message></Error>"
    handler = recorder(httpx.Response(403, text=error_xml))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    with pytest.raises(R2RequestError) as exc_info:
        await client.list_objects()

    error = exc_info.value
    assert error.status == 403
    assert error.status_code == 403
    assert error.error_code == "AccessDenied"
    assert error.message == "Access Denied"
    assert error.details.code == "AccessDenied"


async def test_unparsable_error_body_becomes_details(configured_env, recorder):
    handler = recorder(httpx.Response(500, text="upstream exploded"))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    with pytest.raises(R2RequestError) as exc_info:
        await client.upload_object("a.png", b"x")

    assert exc_info.value.status == 500
    assert exc_info.value.error_code is None
    assert exc_info.value.message == "Cloudflare R2 请求失败"
    assert exc_info.value.details == "upstream exploded"


async def test_network_failure_has_no_status(configured_env, recorder):
    cause = httpx.ConnectError("name resolution failed")
    handler = recorder(error=cause)
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    with pytest.raises(R2RequestError) as exc_info:
        await client.delete_object("imgs/a.png")

    assert exc_info.value.status is None
    assert exc_info.value.status_code == 502
    assert exc_info.value.details is cause
    assert len(handler.requests) == 1


async def test_delete_rejects_keys_outside_prefix_before_any_request(configured_env, recorder):
    handler = recorder(httpx.Response(204))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    with pytest.raises(InvalidObjectKeyError):
        await client.delete_object("../secrets/key.pem")

    assert handler.requests == []


async def test_delete_normalises_key(configured_env, recorder):
    handler = recorder(httpx.Response(204))
    client = R2StorageClient(transport=httpx.MockTransport(handler))

    result = await client.delete_object("/imgs/./sub//a.png")

    assert result.key == "imgs/sub/a.png"
    (request,) = handler.requests
    assert request.method == "DELETE"
    assert request.url.path == "/files/imgs/sub/a.png"
    assert request.headers["x-amz-content-sha256"] == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )
    assert_signature_verifies(request)


async def test_build_public_url_is_pure(clean_env):
    client = R2StorageClient()

    assert client.build_public_url("question-images/a.png") is None

    clean_env.setenv("CF_R2_ACCOUNT_ID", "acct1")
    clean_env.setenv("CF_R2_ACCESS_KEY_ID", "key")
    clean_env.setenv("CF_R2_SECRET_ACCESS_KEY", "secret")
    clean_env.setenv("CF_R2_BUCKET_NAME", "files")

    assert client.build_public_url("") is None
    assert client.build_public_url("question-images/a.png") == (
        "https://acct1.r2.cloudflarestorage.com/files/question-images/a.png"
    )


async def test_status_summary_reports_configuration(configured_env):
    status = R2StorageClient().get_status_summary()

    assert status.configured is True
    assert status.account_id == "acct1"
    assert status.bucket_name == "files"
    assert status.endpoint == "https://acct1.r2.cloudflarestorage.com"
    assert status.base_prefix == "imgs"
    assert status.public_base_url == "https://acct1.r2.cloudflarestorage.com/files"
    assert status.sample_public_url == (
        "https://acct1.r2.cloudflarestorage.com/files/imgs/%E7%A4%BA%E4%BE%8B%E5%9B%BE%E7%89%87.png"
    )
    assert status.missing == []
