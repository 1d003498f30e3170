"""
Logging helpers built on structlog
"""

import sys
import time
import logging
import structlog
from structlog import contextvars as struct_context
from contextlib import contextmanager
from .config import settings


# LOG_LEVEL -> structlog 过滤级别
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "false": logging.CRITICAL,
}


def configure_structlog():
    """按 LOG_LEVEL 配置 structlog；false 时只保留致命错误"""
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_LEVEL == "false"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            struct_context.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=False),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_LEVELS.get(settings.LOG_LEVEL, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


configure_structlog()

_logger = structlog.get_logger("cohere_openai")


def bind_request_context(**kwargs) -> None:
    """绑定请求级日志字段（model / mode），忽略空值"""
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    if filtered:
        struct_context.bind_contextvars(**filtered)


def reset_request_context(*keys: str) -> None:
    """请求结束时解绑字段，未传入则清空全部"""
    if keys:
        struct_context.unbind_contextvars(*keys)
    else:
        struct_context.clear_contextvars()


def error_log(message: str, **kwargs) -> None:
    """上游错误、解析失败等，所有级别都输出"""
    _logger.error(message, **kwargs)


def info_log(message: str, **kwargs) -> None:
    _logger.info(message, **kwargs)


def debug_log(message: str, **kwargs) -> None:
    """请求/响应体等明细，仅 debug 级别输出"""
    _logger.debug(message, **kwargs)


def request_stage_log(stage: str, message: str, **kwargs) -> None:
    """
    Log a request lifecycle stage (received, transformed, upstream_request,
    upstream_response, stream_dispatch, stream_finished ...) at info level.
    """
    info_log(f"[REQUEST] {message}", stage=stage, **kwargs)


@contextmanager
def perf_timer(operation_name: str):
    """记录代码块耗时（debug 级别），用于上游 TTFB"""
    start_time = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        debug_log(f"⏱️ {operation_name}", elapsed_ms=f"{elapsed_ms:.2f}ms")
