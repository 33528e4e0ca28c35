import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from app.api.dependencies.permissions import require_admin
from app.api.dependencies.service_getters.storage_service_getter import get_r2_client
from app.core.api_response import StandardResponse, response_error, response_success
from app.core.logger import logger
from app.core.response_codes import ResponseCodeEnum
from app.infra.storage.storage_interface import ObjectStorageInterface
from app.schemas.storage.r2_schemas import (
    R2DeletedKey,
    R2ListResponse,
    R2StatusSummary,
    R2UploadResponse,
)

# ==============================================================================
#                            API 路由定义
# ==============================================================================

router = APIRouter(dependencies=[Depends(require_admin)])


def _not_configured(client: ObjectStorageInterface):
    """未配置时直接返回状态摘要，不发起任何网络请求。"""
    status = client.get_status_summary()
    if status.configured:
        return None
    return response_error(code=ResponseCodeEnum.R2_NOT_CONFIGURED, data=status)


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@router.get(
    "/status",
    response_model=StandardResponse[R2StatusSummary],
    summary="【管理员】查看 R2 配置状态"
)
async def get_status(client: ObjectStorageInterface = Depends(get_r2_client)):
    return response_success(data=client.get_status_summary())


@router.get(
    "/objects",
    response_model=StandardResponse[R2ListResponse],
    summary="【管理员】分页列出对象"
)
async def list_objects(
        prefix: str = Query("", description="基础前缀下的子目录"),
        limit: Optional[str] = Query(None, description="每页数量，范围 1-500，默认 50"),
        token: Optional[str] = Query(None, description="上一页返回的续传令牌"),
        client: ObjectStorageInterface = Depends(get_r2_client),
):
    not_configured = _not_configured(client)
    if not_configured:
        return not_configured

    result = await client.list_objects(
        prefix=prefix,
        limit=_parse_limit(limit),
        continuation_token=token or None,
    )
    return response_success(data=result)


@router.post(
    "/objects",
    response_model=StandardResponse[R2UploadResponse],
    summary="【管理员】上传一个文件"
)
async def upload_object(
        file: Optional[UploadFile] = File(None),
        folder: Optional[str] = Form(None, description="基础前缀下的目标目录"),
        filename: Optional[str] = Form(None, description="自定义文件名，优先于上传文件自身的名字"),
        client: ObjectStorageInterface = Depends(get_r2_client),
):
    not_configured = _not_configured(client)
    if not_configured:
        return not_configured

    if file is None:
        return response_error(code=ResponseCodeEnum.FILE_MISSING, http_status=400)

    provided_name = (filename or "").strip() or (file.filename or "").strip()
    file_name = provided_name or f"upload-{int(time.time() * 1000)}"
    content = await file.read()

    result = await client.upload_object(
        file_name,
        content,
        folder=folder,
        content_type=file.content_type or None,
    )
    return response_success(
        data=R2UploadResponse(**result.model_dump(), size=len(content)),
        message="文件上传成功",
    )


@router.delete(
    "/object",
    response_model=StandardResponse[R2DeletedKey],
    summary="【管理员】删除一个对象"
)
async def delete_object(
        request: Request,
        key: Optional[str] = Query(None, description="要删除的对象键，也可以放在 JSON 请求体中"),
        client: ObjectStorageInterface = Depends(get_r2_client),
):
    not_configured = _not_configured(client)
    if not_configured:
        return not_configured

    body_key = None
    body = await request.body()
    if body:
        try:
            payload = await request.json()
        except ValueError as e:
            logger.warning(f"[admin:r2] Failed to parse delete payload: {e}")
        else:
            if isinstance(payload, dict) and isinstance(payload.get("key"), str):
                body_key = payload["key"]

    target_key = body_key or key
    if not target_key or not target_key.strip():
        return response_error(
            code=ResponseCodeEnum.OBJECT_KEY_INVALID,
            http_status=400,
            message="缺少要删除的对象 key",
        )

    result = await client.delete_object(target_key)
    return response_success(data=result, message="对象已删除")
