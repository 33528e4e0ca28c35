from typing import Optional

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    api_prefix : str = "/api/v1"
    env : str = "dev"


class LoggingConfig(BaseModel):
    enable_file: bool = True
    log_dir: str = "logs"
    rotation: str = "1 week"
    retention: str = "1 month"


class SecuritySettings(BaseModel):
    admin_token: Optional[str] = Field(
        None,
        description="管理员接口访问令牌，未设置时所有管理接口拒绝访问"
    )
    admin_token_header: str = "X-Admin-Token"


class R2TransportConfig(BaseModel):
    """
    R2 请求的传输层参数。
    账号、密钥、存储桶等凭据不在这里：它们在每次调用时从环境变量重新读取。
    """

    connect_timeout: float = 10.0
    """连接超时时间 (秒)"""

    read_timeout: float = 60.0
    """读取超时时间 (秒)"""


# ========================================================================================
#
#   所有配置模型都要写在APPconfig上方
#
# ========================================================================================
class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    r2: R2TransportConfig = Field(default_factory=R2TransportConfig)
