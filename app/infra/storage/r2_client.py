from typing import Optional

import httpx

from app.core.exceptions import InvalidObjectKeyError
from app.core.logger import logger
from app.infra.storage.key_sanitizer import (
    ensure_key_within_prefix,
    join_key_parts,
    sanitize_file_name,
    sanitize_key_prefix,
)
from app.infra.storage.r2_env import (
    build_object_public_url,
    ensure_r2_environment,
    resolve_r2_environment,
)
from app.infra.storage.sigv4 import Body, to_bytes
from app.infra.storage.storage_interface import ObjectStorageInterface
from app.infra.storage.transport import send_r2_request
from app.infra.storage.xml_parsers import parse_list_objects_response
from app.schemas.storage.r2_schemas import (
    R2DeletedKey,
    R2ListResponse,
    R2StatusSummary,
    R2UploadResult,
)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 500
SAMPLE_FILE_NAME = "示例图片.png"


class R2StorageClient(ObjectStorageInterface):
    """
    Cloudflare R2 (S3 兼容) 客户端，直接使用 SigV4 签名的 REST 请求，不依赖任何 SDK。

    客户端本身不持有连接或配置：每次调用都会重新读取环境变量，
    并在缺少必需配置时于网络请求之前抛出 R2ConfigurationError。
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # 仅用于测试注入 httpx.MockTransport
        self.transport = transport

    def get_status_summary(self) -> R2StatusSummary:
        env = resolve_r2_environment()
        base_prefix = env.config.base_prefix
        sample_key = f"{base_prefix}/{SAMPLE_FILE_NAME}" if base_prefix else SAMPLE_FILE_NAME
        return R2StatusSummary(
            configured=env.configured,
            account_id=env.config.account_id or None,
            bucket_name=env.config.bucket_name or None,
            endpoint=env.endpoint or None,
            base_prefix=base_prefix or None,
            public_base_url=env.public_base_url or None,
            sample_public_url=build_object_public_url(env, sample_key),
            missing=env.missing,
        )

    def build_public_url(self, key: str) -> Optional[str]:
        env = resolve_r2_environment()
        if not env.configured or not key:
            return None
        return build_object_public_url(env, key)

    async def upload_object(
            self,
            file_name: str,
            body: Body,
            folder: Optional[str] = None,
            content_type: Optional[str] = None,
    ) -> R2UploadResult:
        env = ensure_r2_environment()
        final_key = join_key_parts([
            env.config.base_prefix,
            sanitize_key_prefix(folder or ""),
            sanitize_file_name(file_name),
        ])
        if not final_key:
            raise InvalidObjectKeyError("无法生成上传对象键，请检查文件名或目录设置")

        body_bytes = to_bytes(body)
        logger.info(f"[R2 Driver] Putting object: {final_key} ({len(body_bytes)} bytes)")
        response = await send_r2_request(
            env,
            "PUT",
            key=final_key,
            headers={"content-type": content_type},
            body=body_bytes,
            transport=self.transport,
        )

        etag = response.headers.get("etag")
        logger.info(f"[R2 Driver] Upload for {final_key} complete.")
        return R2UploadResult(
            key=final_key,
            etag=etag.replace('"', "") if etag else None,
            public_url=build_object_public_url(env, final_key),
        )

    async def list_objects(
            self,
            prefix: Optional[str] = None,
            limit: Optional[int] = None,
            continuation_token: Optional[str] = None,
    ) -> R2ListResponse:
        env = ensure_r2_environment()
        final_prefix = join_key_parts([env.config.base_prefix, sanitize_key_prefix(prefix or "")])
        page_size = min(max(limit if limit is not None else DEFAULT_LIST_LIMIT, 1), MAX_LIST_LIMIT)

        response = await send_r2_request(
            env,
            "GET",
            query={
                "list-type": "2",
                "max-keys": str(page_size),
                "prefix": final_prefix or None,
                "continuation-token": continuation_token or None,
            },
            transport=self.transport,
        )

        result = parse_list_objects_response(env, response.text)
        logger.info(f"[R2 Driver] Listed {len(result.objects)} objects with prefix '{final_prefix}'.")
        return result

    async def delete_object(self, key: str) -> R2DeletedKey:
        env = ensure_r2_environment()
        normalised_key = ensure_key_within_prefix(env, key)
        logger.info(f"[R2 Driver] Removing object: {normalised_key}")
        await send_r2_request(env, "DELETE", key=normalised_key, transport=self.transport)
        return R2DeletedKey(key=normalised_key)


# ==============================================================================
#                      全局实例及函数式入口
# ==============================================================================

r2_client = R2StorageClient()


def get_r2_status_summary() -> R2StatusSummary:
    return r2_client.get_status_summary()


def build_r2_public_url(key: str) -> Optional[str]:
    return r2_client.build_public_url(key)


async def upload_r2_object(
        file_name: str,
        body: Body,
        folder: Optional[str] = None,
        content_type: Optional[str] = None,
) -> R2UploadResult:
    return await r2_client.upload_object(file_name, body, folder=folder, content_type=content_type)


async def list_r2_objects(
        prefix: Optional[str] = None,
        limit: Optional[int] = None,
        continuation_token: Optional[str] = None,
) -> R2ListResponse:
    return await r2_client.list_objects(prefix=prefix, limit=limit, continuation_token=continuation_token)


async def delete_r2_object(key: str) -> R2DeletedKey:
    return await r2_client.delete_object(key)