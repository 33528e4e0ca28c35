# app/api/dependencies/permissions.py

import hmac
from typing import Optional

from fastapi import Request

from app.config.settings import settings
from app.core.exceptions import PermissionDeniedException, UnauthorizedException


def require_admin(request: Request) -> str:
    """
    管理接口的访问控制依赖。

    请求头中的令牌与 security.admin_token 做常量时间比较；
    服务端未配置令牌时，所有管理接口一律拒绝。
    """
    expected: Optional[str] = settings.security.admin_token
    if not expected:
        raise PermissionDeniedException("管理接口未启用：未配置管理员令牌")

    provided = request.headers.get(settings.security.admin_token_header)
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise UnauthorizedException("管理员令牌无效或缺失")
    return provided
