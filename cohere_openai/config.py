"""
FastAPI application configuration module
"""

import os
import logging
from functools import lru_cache
from typing import Optional, Any, Dict

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# 加载.env文件,覆盖电脑自身环境变量，哪怕为空也要加载
load_dotenv(override=True)


logger = logging.getLogger("config")


def _default_sampling() -> Dict[str, Any]:
    """请求体无法解析时使用的默认采样参数"""
    return {
        "temperature": 0.5,
        "presence_penalty": 0,
        "frequency_penalty": 0,
        "top_p": 1,
    }


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration - Cohere 上游地址
    COHERE_API_ENDPOINT: str = os.getenv("COHERE_API_ENDPOINT", "https://api.cohere.ai/v1/chat")

    # 是否允许通过 ?key= 查询参数提供上游凭证（缺省时 authorization 头为必填）
    ALLOW_QUERY_KEY: bool = os.getenv("ALLOW_QUERY_KEY", "false").lower() == "true"

    # Model Configuration
    DEFAULT_MODEL: str = os.getenv("DEFAULT_MODEL", "command-r")

    # 请求体解析失败时的兜底请求
    DEFAULT_PROMPT: str = os.getenv("DEFAULT_PROMPT", "hello")
    DEFAULT_SAMPLING: Dict[str, Any] = Field(default_factory=_default_sampling)

    # Server Configuration
    LISTEN_PORT: int = int(os.getenv("LISTEN_PORT", "8080"))

    # Logging Configuration - 支持三个等级：false, info, debug
    _log_level_str: str = os.getenv("LOG_LEVEL", "info").lower()
    LOG_LEVEL: str = _log_level_str if _log_level_str in ["false", "info", "debug"] else "info"

    # 流式通道容量（写入方在队列满时等待）
    STREAM_QUEUE_SIZE: int = int(os.getenv("STREAM_QUEUE_SIZE", "64"))

    # Request Configuration - 超时（秒）
    CONNECT_TIMEOUT: float = float(os.getenv("CONNECT_TIMEOUT", "10"))
    READ_TIMEOUT: float = float(os.getenv("READ_TIMEOUT", "120"))

    # Proxy Configuration - 出站代理（可选）
    HTTP_PROXY: Optional[str] = os.getenv("HTTPS_PROXY") or os.getenv("HTTP_PROXY") or None

    def model_post_init(self, __context: Any) -> None:
        if self.HTTP_PROXY:
            logger.info("[PROXY] 使用出站代理: %s", self.HTTP_PROXY)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
