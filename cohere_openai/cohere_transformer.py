#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Cohere格式转换器 - OpenAI chat 请求 -> Cohere /v1/chat 请求
"""

import re
from enum import Enum
from typing import Dict, Any, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from .config import settings
from .helpers import debug_log
from .message_processor import message_processor
from .schemas import Message, UpstreamRequest


# 保留字段：以 model / messages / stream 开头（不区分大小写）的键不透传
RESERVED_KEY_PATTERN = re.compile(r"^(model|messages|stream)", re.IGNORECASE)

WEB_SEARCH_CONNECTORS = [{"id": "web-search"}]
BUILTIN_TOOLS = [
    {"name": "internet_search"},
    {"name": "calculator"},
    {"name": "python_interpreter"},
]


class ModelPrefix(str, Enum):
    """模型名路由前缀，按定义顺序匹配，区分大小写"""

    NET = "net-"
    TOOLS = "tools-"

    @classmethod
    def split(cls, model: str) -> Tuple[Optional["ModelPrefix"], str]:
        """拆出路由前缀，返回 (前缀, 剩余模型名)；最多剥离一个前缀"""
        for prefix in cls:
            if model.startswith(prefix.value):
                return prefix, model[len(prefix.value):]
        return None, model


def build_fallback_body(query: Mapping[str, str]) -> Dict[str, Any]:
    """请求体无法解析时的默认请求"""
    body: Dict[str, Any] = {
        "messages": [{"role": "user", "content": query.get("q") or settings.DEFAULT_PROMPT}],
    }
    body.update(settings.DEFAULT_SAMPLING)
    body["stream"] = True
    return body


def is_reserved_key(key: str) -> bool:
    return bool(RESERVED_KEY_PATTERN.match(key))


class CohereTransformer:
    """OpenAI -> Cohere 请求转换"""

    def _parse_messages(self, body: Any) -> Optional[List[Message]]:
        if not isinstance(body, dict):
            return None
        raw_messages = body.get("messages")
        if not isinstance(raw_messages, list) or not raw_messages:
            return None
        return [self._coerce_message(msg) for msg in raw_messages]

    def _coerce_message(self, raw: Any) -> Message:
        """校验单条消息；校验失败时保留原始内容，由 flatten_content 转为文本"""
        if not isinstance(raw, dict):
            debug_log("[TRANSFORM] 消息不是对象，按 user 文本处理", message_type=type(raw).__name__)
            return Message.model_construct(role="user", content=raw)
        try:
            return Message.model_validate(raw)
        except ValidationError as exc:
            debug_log("[TRANSFORM] 消息格式不标准，原样转为文本", error=str(exc))
            role = raw.get("role")
            return Message.model_construct(
                role=role if isinstance(role, str) else "user",
                content=raw.get("content"),
            )

    def transform_request(self, body: Optional[Any], query: Mapping[str, str]) -> UpstreamRequest:
        """
        转换客户端请求

        Args:
            body: 解析后的请求体，解析失败时为 None
            query: 查询参数（q / model）

        Returns:
            UpstreamRequest，任何输入都会得到结果
        """
        messages = self._parse_messages(body)
        if messages is None:
            debug_log("[TRANSFORM] 请求体不可用，构造默认请求", q=query.get("q"))
            body = build_fallback_body(query)
            messages = [Message.model_validate(msg) for msg in body["messages"]]

        chat_history, current_message = message_processor.split_messages(messages)

        requested_model = body.get("model")
        requested_model = requested_model if isinstance(requested_model, str) else ""
        prefix, base_name = ModelPrefix.split(requested_model)

        connectors = WEB_SEARCH_CONNECTORS if prefix is ModelPrefix.NET else None
        tools = BUILTIN_TOOLS if prefix is ModelPrefix.TOOLS else None

        # 只有 command 系列模型名会透传给上游，其余使用默认模型
        if base_name.startswith("command"):
            model = base_name
        else:
            model = query.get("model") or settings.DEFAULT_MODEL

        passthrough = {key: value for key, value in body.items() if not is_reserved_key(key)}

        upstream = UpstreamRequest(
            chat_history=chat_history,
            message=current_message,
            model=model,
            stream=body.get("stream") is True,
            connectors=[dict(c) for c in connectors] if connectors else None,
            tools=[dict(t) for t in tools] if tools else None,
            passthrough=passthrough,
        )
        debug_log(
            "[TRANSFORM] 请求转换完成",
            requested_model=requested_model or None,
            upstream_model=model,
            route=prefix.value if prefix else "plain",
            history_count=len(chat_history),
            passthrough_keys=list(passthrough),
        )
        return upstream
