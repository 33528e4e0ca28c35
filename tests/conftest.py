import os

# 必须在导入 app 之前设置，配置在首次导入时加载
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("LOG_ENABLE_FILE", "false")
os.environ.setdefault("APP_ENV", "test")

import httpx
import pytest

from app.core.logger import logger
from app.infra.storage import r2_env

ALL_R2_ENV_KEYS = (
    r2_env.ACCOUNT_ID_KEYS
    + r2_env.ACCESS_KEY_ID_KEYS
    + r2_env.SECRET_ACCESS_KEY_KEYS
    + r2_env.BUCKET_NAME_KEYS
    + r2_env.PUBLIC_BASE_URL_KEYS
    + r2_env.BASE_PREFIX_KEYS
    + r2_env.PROXY_URL_KEYS
    + r2_env.DISABLE_PROXY_KEYS
)

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clean_env(monkeypatch):
    for key in ALL_R2_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def configured_env(clean_env):
    clean_env.setenv("CF_R2_ACCOUNT_ID", "acct1")
    clean_env.setenv("CF_R2_ACCESS_KEY_ID", "AKIDEXAMPLE")
    clean_env.setenv("CF_R2_SECRET_ACCESS_KEY", "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY")
    clean_env.setenv("CF_R2_BUCKET_NAME", "files")
    clean_env.setenv("CF_R2_BASE_PREFIX", "imgs")
    return clean_env


class RecordingHandler:
    """httpx.MockTransport 的处理函数，记录收到的请求并返回预设响应。"""

    def __init__(self, response=None, error=None):
        self.requests = []
        self.response = response or httpx.Response(200)
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if callable(self.response):
            return self.response(request)
        return self.response


@pytest.fixture
def recorder():
    return RecordingHandler


@pytest.fixture
def log_messages():
    """把 loguru 的输出收集到列表中，便于断言日志内容。"""
    messages = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{level} | {message}")
    try:
        yield messages
    finally:
        logger.remove(handler_id)
