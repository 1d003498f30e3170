#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
上游事件模型 - Cohere 流式事件的显式标签联合

每一行 NDJSON 在解码边界处只解析一次，之后由下游按类型分发，
不再逐字段探测 event_type / text / is_finished。
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import orjson

from ..helpers import debug_log


@dataclass(frozen=True)
class TextGeneration:
    text: str
    is_finished: bool = False


@dataclass(frozen=True)
class ToolCallsGeneration:
    is_finished: bool = False


@dataclass(frozen=True)
class SearchResults:
    query_text: Optional[str]
    is_finished: bool = False


@dataclass(frozen=True)
class OtherEvent:
    """stream-start / stream-end / citation-generation 等未单独建模的事件"""
    event_type: Optional[str]
    text: str = ""
    is_finished: bool = False


UpstreamEvent = Union[TextGeneration, ToolCallsGeneration, SearchResults, OtherEvent]


@dataclass(frozen=True)
class ToolInvocation:
    name: str
    parameters: Dict[str, Any]


class ToolInvocationError(ValueError):
    """search_query.text 中的工具描述无法解析"""


def _text_of(payload: Dict[str, Any]) -> str:
    text = payload.get("text")
    return text if isinstance(text, str) else ""


def _first_query_text(search_results: Any) -> Optional[str]:
    if not isinstance(search_results, list) or not search_results:
        return None
    first = search_results[0]
    if not isinstance(first, dict):
        return None
    query = first.get("search_query")
    if not isinstance(query, dict):
        return None
    text = query.get("text")
    return text if isinstance(text, str) and text else None


def parse_event(payload: Dict[str, Any]) -> UpstreamEvent:
    """把一条解码后的上游 JSON 对象映射为事件类型"""
    event_type = payload.get("event_type")
    is_finished = payload.get("is_finished") is True

    if event_type == "tool-calls-generation":
        return ToolCallsGeneration(is_finished=is_finished)
    if event_type == "search-results":
        return SearchResults(
            query_text=_first_query_text(payload.get("search_results")),
            is_finished=is_finished,
        )
    if event_type == "text-generation":
        return TextGeneration(text=_text_of(payload), is_finished=is_finished)
    return OtherEvent(
        event_type=event_type,
        text=_text_of(payload),
        is_finished=is_finished,
    )


def parse_tool_invocation(query_text: str) -> ToolInvocation:
    """
    解析 search-results 事件中嵌套的工具调用 JSON

    Raises:
        ToolInvocationError: 内容不是 {tool_name, parameters} 形式的 JSON
    """
    try:
        descriptor = orjson.loads(query_text)
    except orjson.JSONDecodeError as exc:
        raise ToolInvocationError(f"invalid tool descriptor: {exc}") from exc

    if not isinstance(descriptor, dict) or not isinstance(descriptor.get("tool_name"), str):
        raise ToolInvocationError("tool descriptor missing tool_name")

    parameters = descriptor.get("parameters")
    if parameters is None:
        parameters = {}
    if not isinstance(parameters, dict):
        raise ToolInvocationError("tool descriptor parameters must be an object")

    debug_log("[EVENT] 解析工具调用", tool_name=descriptor["tool_name"])
    return ToolInvocation(name=descriptor["tool_name"], parameters=parameters)


def _param_text(parameters: Dict[str, Any], key: str) -> str:
    value = parameters.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else orjson.dumps(value).decode("utf-8")


def render_tool_invocation(invocation: ToolInvocation) -> str:
    """把工具调用渲染为 markdown 代码块"""
    if invocation.name == "python_interpreter":
        tag, body = "python", _param_text(invocation.parameters, "code")
    elif invocation.name == "internet_search":
        tag, body = "txt", "Internet Search:" + _param_text(invocation.parameters, "query")
    elif invocation.name == "calculator":
        tag, body = invocation.name, "Calc:" + _param_text(invocation.parameters, "expression")
    else:
        tag, body = invocation.name, orjson.dumps(invocation.parameters).decode("utf-8")
    return f"\n```{tag}\n{body}\n```\n"
