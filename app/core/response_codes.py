from enum import Enum


class ResponseCodeEnum(Enum):

    # === 通用响应码 ===
    SUCCESS = (0, "请求成功")
    AUTH_ERROR = (40100, "认证失败")
    FORBIDDEN = (40300, "没有权限")
    SERVER_ERROR = (50000, "服务器内部错误")

    # === 对象存储 (Cloudflare R2) ===
    R2_NOT_CONFIGURED = (40020, "Cloudflare R2 尚未配置")
    OBJECT_KEY_INVALID = (40021, "对象键不合法")
    FILE_MISSING = (40022, "请上传需要保存的文件")
    R2_REQUEST_FAILED = (50201, "Cloudflare R2 请求失败")

    def __init__(self, code: int, message: str):
        self._code = code
        self._message = message

    @property
    def code(self):
        return self._code

    @property
    def message(self):
        return self._message
