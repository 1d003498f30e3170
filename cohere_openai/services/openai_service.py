"""Service layer orchestrating OpenAI-compatible chat completions over Cohere."""

from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Optional

import httpx
import orjson
from fastapi import Response
from fastapi.responses import StreamingResponse

from ..config import settings
from ..helpers import (
    bind_request_context,
    debug_log,
    error_log,
    perf_timer,
    request_stage_log,
)
from ..cohere_transformer import CohereTransformer
from ..schemas import UpstreamRequest
from .chunk_builder import ChunkBuilder
from .network_manager import network_manager
from .stream_pipeline import StreamPipeline


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}


def cors_headers(**extra: str) -> Dict[str, str]:
    headers = dict(CORS_HEADERS)
    headers.update(extra)
    return headers


class ChatCompletionService:
    """Encapsulate chat completion workflow independent of FastAPI layer."""

    def __init__(self) -> None:
        self.transformer = CohereTransformer()

    def resolve_credential(self, authorization: Optional[str], query: Mapping[str, str]) -> Optional[str]:
        """authorization 头优先；开启 ALLOW_QUERY_KEY 时接受 ?key="""
        if authorization:
            return authorization
        if settings.ALLOW_QUERY_KEY and query.get("key"):
            return f"bearer {query.get('key')}"
        return None

    def prepare_request(self, body: Optional[Any], query: Mapping[str, str]) -> UpstreamRequest:
        request_stage_log("transform_in", "开始转换请求格式: OpenAI -> Cohere")
        return self.transformer.transform_request(body, query)

    async def send_upstream(self, upstream: UpstreamRequest, credential: str) -> httpx.Response:
        """发起唯一一次上游调用；流式模式下响应体尚未读取"""
        client = await network_manager.get_client()
        payload = upstream.to_payload()
        debug_log("上游请求体详情", request_body=orjson.dumps(payload).decode("utf-8"))
        request = client.build_request(
            "POST",
            settings.COHERE_API_ENDPOINT,
            content=orjson.dumps(payload),
            headers={
                "content-type": "application/json",
                "Authorization": credential,
            },
        )
        request_stage_log(
            "upstream_request",
            "向上游发起请求",
            upstream=settings.COHERE_API_ENDPOINT,
            mode="stream" if upstream.stream else "non_stream",
        )
        with perf_timer("上游TTFB (首字节时间)"):
            return await client.send(request, stream=upstream.stream)

    async def passthrough_response(self, response: httpx.Response) -> Response:
        """非 200 上游响应原样转发"""
        try:
            content = await response.aread()
        finally:
            await response.aclose()
        error_log(
            "上游返回错误",
            status_code=response.status_code,
            error_detail=content[:200].decode("utf-8", errors="ignore"),
        )
        headers = cors_headers()
        content_type = response.headers.get("content-type")
        if content_type:
            headers["Content-Type"] = content_type
        return Response(content=content, status_code=response.status_code, headers=headers)

    def build_completion_response(self, response: httpx.Response, upstream: UpstreamRequest, created: int) -> Response:
        """Cohere 非流式响应 -> chat.completion"""
        bind_request_context(mode="non_stream")
        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as exc:
            error_log("上游响应不是合法 JSON", error=str(exc))
            data = {"error": str(exc)}
        if not isinstance(data, dict):
            data = {"error": "upstream response is not a JSON object"}

        completion = ChunkBuilder(upstream.model, created).build_completion(data.get("text") or data.get("error"))
        request_stage_log("non_stream_ready", "非流式结果已生成")
        return Response(
            content=orjson.dumps(completion),
            status_code=response.status_code,
            headers=cors_headers(**{"Content-Type": "application/json; charset=UTF-8"}),
        )

    def build_stream_response(self, response: httpx.Response, upstream: UpstreamRequest, created: int) -> StreamingResponse:
        """Cohere NDJSON 流 -> OpenAI SSE 流（无 [DONE] 结束标记）"""
        bind_request_context(mode="stream")
        pipeline = StreamPipeline(upstream.model, created, queue_size=settings.STREAM_QUEUE_SIZE)
        return StreamingResponse(
            pipeline.stream(response),
            status_code=response.status_code,
            headers=cors_headers(**{"Content-Type": "text/event-stream; charset=UTF-8"}),
        )

    async def complete(self, body: Optional[Any], query: Mapping[str, str], credential: str) -> Response:
        upstream = self.prepare_request(body, query)
        bind_request_context(model=upstream.model)
        request_stage_log(
            "transformed",
            "请求已转换为上游所需格式",
            model=upstream.model,
            stream=upstream.stream,
            history_count=len(upstream.chat_history),
        )

        try:
            response = await self.send_upstream(upstream, credential)
            if response.status_code != 200:
                return await self.passthrough_response(response)
        except httpx.HTTPError as exc:
            error_log("上游请求失败", error=str(exc), error_type=type(exc).__name__)
            return Response(
                content=orjson.dumps({
                    "error": {
                        "message": f"Upstream request failed: {exc}",
                        "type": "upstream_error",
                    }
                }),
                status_code=502,
                headers=cors_headers(**{"Content-Type": "application/json; charset=UTF-8"}),
            )

        request_stage_log("upstream_response", "Cohere 响应成功", status=response.status_code)
        created = int(time.time())
        if not upstream.stream:
            return self.build_completion_response(response, upstream, created)
        return self.build_stream_response(response, upstream, created)


chat_completion_service = ChatCompletionService()
