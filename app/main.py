from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.config.settings import settings
from app.core.exceptions import BaseBusinessException, InvalidObjectKeyError, R2RequestError
from app.core.logger import logger
from app.core.response_codes import ResponseCodeEnum
from app.infra.storage.r2_client import get_r2_status_summary


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 应用启动中...")
    status = get_r2_status_summary()
    if status.configured:
        logger.info(f"✅ Cloudflare R2 已配置: bucket={status.bucket_name}, prefix={status.base_prefix}")
    else:
        logger.warning(f"⚠️ Cloudflare R2 尚未配置，缺少: {', '.join(status.missing)}")

    yield

    logger.info("🛑 应用已关闭")


app = FastAPI(title="Practice Exam Storage Admin", lifespan=lifespan)


@app.exception_handler(BaseBusinessException)
async def business_exception_handler(request: Request, exc: BaseBusinessException):
    logger.warning(f"Business Exception | code: {exc.code}, message: {exc.message}, path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "code": exc.code,
            "message": exc.message,
            "data": exc.extra or None
        }
    )


@app.exception_handler(R2RequestError)
async def r2_request_exception_handler(request: Request, exc: R2RequestError):
    logger.warning(
        f"R2 Request Error | status: {exc.status}, error_code: {exc.error_code}, "
        f"message: {exc.message}, path: {request.url.path}"
    )
    # 只有原始响应体 (字符串) 会回传给前端，解析后的对象和底层异常不外泄
    details = exc.details if isinstance(exc.details, str) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "code": exc.code,
            "message": exc.message,
            "data": {
                "error_code": exc.error_code or "R2_REQUEST_FAILED",
                "details": details,
            }
        }
    )


@app.exception_handler(InvalidObjectKeyError)
async def invalid_key_exception_handler(request: Request, exc: InvalidObjectKeyError):
    logger.warning(f"Invalid Object Key | message: {exc}, path: {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={
            "code": ResponseCodeEnum.OBJECT_KEY_INVALID.code,
            "message": str(exc),
            "data": None
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled Exception | {repr(exc)} | path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "code": ResponseCodeEnum.SERVER_ERROR.code,
            "message": ResponseCodeEnum.SERVER_ERROR.message,
            "data": None
        }
    )


origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.server.api_prefix)
