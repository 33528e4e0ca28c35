# app/core/exceptions/base_exception.py

from typing import Optional

from app.core.response_codes import ResponseCodeEnum


class BaseBusinessException(Exception):
    def __init__(
            self,
            code_enum: Optional[ResponseCodeEnum] = None,
            code: Optional[int] = None,
            status_code: int = 200,
            message: Optional[str] = None,
            extra: Optional[dict] = None,
    ):
        self.code = code if code is not None else code_enum.code
        self.message = message or code_enum.message
        self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self):
        return f"[{self.code}] {self.message}"


class UnauthorizedException(BaseBusinessException):
    """
    未携带或携带了错误的管理员令牌。
    """
    def __init__(self, message: str = "认证失败"):
        super().__init__(ResponseCodeEnum.AUTH_ERROR, status_code=401, message=message)


class PermissionDeniedException(BaseBusinessException):
    """
    权限不足
    """
    def __init__(self, message: str = "权限不足"):
        super().__init__(ResponseCodeEnum.FORBIDDEN, status_code=403, message=message)
