#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
流式帧解码器 - 上游 NDJSON 字节流 -> 事件序列

字节块边界任意（可能切断多字节 UTF-8 字符或一行 JSON），
解码器保留未完成的尾部片段直到下一次读取。
"""

import codecs
from typing import AsyncIterator, List

import orjson

from ..helpers import debug_log, error_log
from .events import UpstreamEvent, parse_event


class FrameDecoder:
    """单请求的增量解码状态，不可跨请求共享"""

    def __init__(self) -> None:
        # 非法字节替换为 U+FFFD，不中断整个流
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.dropped_lines = 0

    def feed(self, data: bytes) -> List[UpstreamEvent]:
        """喂入一个字节块，返回其中所有完整行解析出的事件"""
        self._buffer += self._decoder.decode(data)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [event for event in (self._parse_line(line) for line in lines) if event is not None]

    def flush(self) -> None:
        """流结束：收尾增量解码器，未以换行结束的残片被丢弃"""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            debug_log("[DECODER] 丢弃未结束的尾部片段", length=len(self._buffer))
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def _parse_line(self, line: str):
        if not line:
            return None
        try:
            payload = orjson.loads(line)
        except orjson.JSONDecodeError as exc:
            self.dropped_lines += 1
            error_log("[DECODER] 无法解析上游消息", error=str(exc), line=line[:200])
            return None
        if not isinstance(payload, dict):
            self.dropped_lines += 1
            error_log("[DECODER] 上游消息不是 JSON 对象", line=line[:200])
            return None
        return parse_event(payload)


async def decode_frames(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[UpstreamEvent]:
    """
    惰性解码上游字节流

    Args:
        byte_stream: 上游响应体的字节块迭代器

    Yields:
        按到达顺序解析出的事件
    """
    decoder = FrameDecoder()
    async for data in byte_stream:
        for event in decoder.feed(data):
            yield event
    decoder.flush()
