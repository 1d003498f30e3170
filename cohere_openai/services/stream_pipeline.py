#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
流式管道 - 帧解码 -> 事件翻译 -> SSE 写入

输出通道的生命周期只由上游响应体决定：开始翻译时打开，
上游结束或出错时无条件关闭一次。
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol

import httpx

from ..helpers import debug_log, error_log, request_stage_log
from .chunk_builder import ChunkBuilder
from .event_translator import EventTranslator
from .frame_decoder import decode_frames


class FrameWriter(Protocol):
    async def write(self, frame: str) -> None: ...

    async def close(self) -> None: ...


_END = object()


class ChannelWriter:
    """有界的单生产者/单消费者通道，写端在容量耗尽时等待读端"""

    def __init__(self, maxsize: int = 64) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._capacity = asyncio.Semaphore(max(1, maxsize))
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, frame: str) -> None:
        if self._closed:
            raise RuntimeError("write to closed channel")
        await self._capacity.acquire()
        self._queue.put_nowait(frame)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # 结束标记不占容量，关闭永不阻塞
        self._queue.put_nowait(_END)

    async def frames(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            self._capacity.release()
            yield item


class StreamPipeline:
    """单请求流式翻译，每个请求独立持有解码与翻译状态"""

    def __init__(self, model: str, created: int, queue_size: int = 64) -> None:
        self.translator = EventTranslator(ChunkBuilder(model, created))
        self.queue_size = queue_size
        self.frames_written = 0

    async def run(self, byte_stream: AsyncIterator[bytes], writer: FrameWriter) -> None:
        """
        顺序处理上游事件：每个事件的输出全部写完才解码下一个事件

        单行解析错误在解码器内部吸收；流级别异常向上抛出，
        但写端在任何退出路径上都只关闭一次。
        """
        try:
            async for event in decode_frames(byte_stream):
                for frame in self.translator.translate(event):
                    await writer.write(frame)
                    self.frames_written += 1
        finally:
            await writer.close()
            debug_log("[STREAM] 输出通道已关闭", frames=self.frames_written)

    async def _pump(self, response: httpx.Response, writer: ChannelWriter) -> None:
        try:
            await self.run(response.aiter_bytes(), writer)
        finally:
            await response.aclose()

    async def stream(self, response: httpx.Response) -> AsyncIterator[str]:
        """
        启动后台翻译任务并返回可读端

        客户端断开时可读端被关闭，后台任务随之取消并释放上游连接。
        """
        writer = ChannelWriter(self.queue_size)
        task = asyncio.create_task(self._pump(response, writer))
        request_stage_log("stream_dispatch", "开始推送流式响应数据")
        completed = False
        try:
            async for frame in writer.frames():
                yield frame
            completed = True
        finally:
            if completed:
                # 通道已关闭，等待后台任务释放上游连接
                outcome = (await asyncio.gather(task, return_exceptions=True))[0]
                if isinstance(outcome, BaseException):
                    error_log("[STREAM] 流处理错误", error=str(outcome), error_type=type(outcome).__name__)
                else:
                    request_stage_log("stream_finished", "流式响应完成", frames=self.frames_written)
            elif not task.done():
                debug_log("[STREAM] 客户端提前断开，取消上游读取")
                task.cancel()
            elif not task.cancelled() and task.exception() is not None:
                error_log("[STREAM] 流处理错误", error=str(task.exception()))
