"""
OpenAI API endpoints
"""

from typing import Any, Optional

import orjson
from fastapi import APIRouter, Request, Response

from .helpers import (
    debug_log,
    error_log,
    reset_request_context,
    request_stage_log,
)
from .services.openai_service import chat_completion_service, cors_headers

router = APIRouter()

service = chat_completion_service


async def read_json_body(request: Request) -> Optional[Any]:
    """解析请求体，失败时返回 None（由转换器回退到默认请求）"""
    raw = await request.body()
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as exc:
        debug_log("请求体不是合法 JSON", error=str(exc), length=len(raw))
        return None


@router.options("/{path:path}")
async def handle_options(path: str):
    """CORS 预检请求"""
    return Response(status_code=204, headers=cors_headers())


@router.api_route("/{path:path}", methods=["POST", "PUT", "PATCH"])
async def chat_completions(path: str, request: Request):
    """处理 chat completion 请求，支持流式和非流式"""
    query = request.query_params
    credential = service.resolve_credential(request.headers.get("authorization"), query)
    if not credential:
        error_log("[REQUEST] 缺少 authorization，拒绝请求", path=f"/{path}")
        return Response("403 Auth Required", status_code=403, headers=cors_headers())

    body = await read_json_body(request)
    request_stage_log(
        "received",
        "收到客户端请求",
        path=f"/{path}",
        body_parsed=body is not None,
    )

    try:
        return await service.complete(body, query, credential)
    finally:
        reset_request_context("model", "mode")
