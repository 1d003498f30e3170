#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
事件翻译器 - 单个上游事件 -> 零到多个 OpenAI SSE 块
"""

from typing import List

from ..helpers import debug_log, error_log
from .chunk_builder import ChunkBuilder
from .events import (
    OtherEvent,
    SearchResults,
    TextGeneration,
    ToolCallsGeneration,
    ToolInvocationError,
    UpstreamEvent,
    parse_tool_invocation,
    render_tool_invocation,
)


class EventTranslator:
    """按事件类型渲染下游块；同一事件内正文块总在结束块之前"""

    def __init__(self, chunk: ChunkBuilder) -> None:
        self.chunk = chunk

    def _search_results_text(self, event: SearchResults) -> str:
        if not event.query_text:
            return ""
        try:
            invocation = parse_tool_invocation(event.query_text)
        except ToolInvocationError as exc:
            # 嵌套描述损坏只影响本事件的文本
            error_log("[TRANSLATE] 工具调用描述无效", error=str(exc))
            return ""
        return render_tool_invocation(invocation)

    def event_text(self, event: UpstreamEvent) -> str:
        if isinstance(event, ToolCallsGeneration):
            return ""
        if isinstance(event, SearchResults):
            return self._search_results_text(event)
        if isinstance(event, (TextGeneration, OtherEvent)):
            return event.text
        raise TypeError(f"unknown upstream event: {type(event).__name__}")

    def translate(self, event: UpstreamEvent) -> List[str]:
        # tool-calls-generation 与 search-results 内容重复，整体跳过
        if isinstance(event, ToolCallsGeneration):
            debug_log("[TRANSLATE] 跳过 tool-calls-generation 事件")
            return []

        frames = []
        text = self.event_text(event)
        if text:
            frames.append(self.chunk.build_content_chunk(text))
        if event.is_finished:
            frames.append(self.chunk.build_finish_chunk())
        return frames
