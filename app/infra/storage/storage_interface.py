from abc import ABC, abstractmethod
from typing import Optional

from app.schemas.storage.r2_schemas import (
    R2DeletedKey,
    R2ListResponse,
    R2StatusSummary,
    R2UploadResult,
)
from app.infra.storage.sigv4 import Body


class ObjectStorageInterface(ABC):
    """
    一个抽象基类 (ABC)，定义了对象存储客户端必须实现的统一接口。
    路由层只依赖这个接口，测试时可以替换为任意实现。
    """

    @abstractmethod
    def get_status_summary(self) -> R2StatusSummary:
        """返回当前配置状态，不发起任何网络请求。"""
        pass

    @abstractmethod
    async def upload_object(
            self,
            file_name: str,
            body: Body,
            folder: Optional[str] = None,
            content_type: Optional[str] = None,
    ) -> R2UploadResult:
        """
        上传一个对象。
        :return: 包含 key、etag、public_url 的结果。
        """
        pass

    @abstractmethod
    async def list_objects(
            self,
            prefix: Optional[str] = None,
            limit: Optional[int] = None,
            continuation_token: Optional[str] = None,
    ) -> R2ListResponse:
        """列出基础前缀下的对象，按页返回。"""
        pass

    @abstractmethod
    async def delete_object(self, key: str) -> R2DeletedKey:
        """删除一个对象。"""
        pass

    @abstractmethod
    def build_public_url(self, key: str) -> Optional[str]:
        """构建对象的公开访问 URL。"""
        pass
