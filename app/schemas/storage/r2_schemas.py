from typing import List, Optional

from pydantic import BaseModel, Field


class R2ObjectSummary(BaseModel):
    key: str = Field(..., description="对象在存储桶中的完整键")
    size: int = Field(0, description="对象大小（字节）")
    last_modified: Optional[str] = Field(None, description="最后修改时间 (ISO-8601)")
    etag: Optional[str] = Field(None, description="对象 ETag，已去除引号")
    public_url: Optional[str] = Field(None, description="公开访问 URL，未配置公开域名时为空")


class R2ListResponse(BaseModel):
    """
    一页列表结果。对象按服务端返回的顺序排列，不做二次排序。
    """
    objects: List[R2ObjectSummary] = Field(default_factory=list)
    has_more: bool = False
    continuation_token: Optional[str] = Field(None, description="下一页的续传令牌，已到末尾时为空")


class R2UploadResult(BaseModel):
    key: str
    etag: Optional[str] = None
    public_url: Optional[str] = None


class R2UploadResponse(R2UploadResult):
    size: int = Field(..., description="上传内容的字节数")


class R2DeletedKey(BaseModel):
    key: str


class R2ErrorInfo(BaseModel):
    """S3 REST 错误响应 <Error> 中的字段。"""
    code: Optional[str] = None
    message: Optional[str] = None
    resource: Optional[str] = None
    request_id: Optional[str] = None


class R2StatusSummary(BaseModel):
    configured: bool
    account_id: Optional[str] = None
    bucket_name: Optional[str] = None
    endpoint: Optional[str] = None
    base_prefix: Optional[str] = None
    public_base_url: Optional[str] = None
    sample_public_url: Optional[str] = None
    missing: List[str] = Field(default_factory=list)
