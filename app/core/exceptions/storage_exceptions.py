# app/core/exceptions/storage_exceptions.py

from typing import Any, List, Optional

from app.core.exceptions.base_exception import BaseBusinessException
from app.core.response_codes import ResponseCodeEnum


class R2ConfigurationError(BaseBusinessException):
    """
    R2 必需的配置项缺失。在发起任何网络请求之前抛出。
    `missing` 保存缺失的环境变量名称，由运维修正配置后即可恢复。
    """
    def __init__(self, message: str = "Cloudflare R2 尚未配置完成", missing: Optional[List[str]] = None):
        self.missing = list(missing or [])
        super().__init__(
            ResponseCodeEnum.R2_NOT_CONFIGURED,
            status_code=400,
            message=message,
            extra={"missing": self.missing},
        )


class R2RequestError(BaseBusinessException):
    """
    服务端返回非 2xx，或网络层 (DNS / TCP / TLS) 失败。

    :param status: HTTP 状态码，网络失败时为 None
    :param error_code: 服务端 <Error><Code> 的值
    :param details: 解析后的错误对象、原始响应体或底层异常
    """
    def __init__(
            self,
            message: str = "Cloudflare R2 请求失败",
            status: Optional[int] = None,
            error_code: Optional[str] = None,
            details: Any = None,
    ):
        self.status = status
        self.error_code = error_code
        self.details = details
        super().__init__(
            ResponseCodeEnum.R2_REQUEST_FAILED,
            status_code=status or 502,
            message=message,
        )


class InvalidObjectKeyError(ValueError):
    """调用方传入的对象键不合法或超出前缀范围。"""
