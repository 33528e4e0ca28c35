# app/core/exceptions/__init__.py

from .base_exception import (
    BaseBusinessException,
    UnauthorizedException,
    PermissionDeniedException,
)
from .storage_exceptions import (
    R2ConfigurationError,
    R2RequestError,
    InvalidObjectKeyError,
)

__all__ = [
    "BaseBusinessException",
    "UnauthorizedException",
    "PermissionDeniedException",

    "R2ConfigurationError",
    "R2RequestError",
    "InvalidObjectKeyError",
]
