#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
响应块构建器模块 - 封装所有 OpenAI 响应/流式块构建逻辑
"""

from typing import Any, Dict

import orjson

# 固定的伪造 completion id（所有响应复用，并非唯一标识）
COMPLETION_ID = "chatcmpl-QXlha2FBbmROaXhpZUFyZUF3ZXNvbWUK"


def sse_frame(payload: Dict[str, Any]) -> str:
    """序列化为一个 SSE data 事件"""
    return f"data: {orjson.dumps(payload).decode('utf-8')}\n\n"


class ChunkBuilder:
    """响应块构建器类；model 与 created 在一次请求内固定"""

    def __init__(self, model: str, created: int) -> None:
        self.model = model
        self.created = created

    def _chunk(self, delta: Dict[str, Any], finish_reason) -> Dict[str, Any]:
        return {
            "id": COMPLETION_ID,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [{
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }],
        }

    def build_content_chunk(self, content: str) -> str:
        """构建正文内容 chunk"""
        return sse_frame(self._chunk({"role": "assistant", "content": content}, None))

    def build_finish_chunk(self, finish_reason: str = "stop") -> str:
        """构建结束 chunk（空 delta）"""
        return sse_frame(self._chunk({}, finish_reason))

    def build_completion(self, content: Any) -> Dict[str, Any]:
        """构建非流式 chat.completion 响应体；usage 不统计，恒为 0"""
        return {
            "id": COMPLETION_ID,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model,
            "choices": [{
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": content,
                },
                "logprobs": None,
                "finish_reason": "stop",
            }],
            "usage": {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
            },
            "system_fingerprint": None,
        }
