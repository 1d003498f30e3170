#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
消息处理器模块 - 封装 OpenAI 消息格式处理逻辑

负责把 OpenAI messages 拆分为 Cohere 的 chat_history + message
"""

from typing import List, Tuple, Any

import orjson

from .helpers import debug_log
from .schemas import ChatHistoryEntry, ContentPart, Message


class MessageProcessor:
    """
    消息处理器类

    封装所有消息处理逻辑，包括：
    - 角色映射（assistant -> CHATBOT，其余转大写）
    - 多段 content 扁平化为纯文本
    - 历史消息与当前消息拆分
    """

    def map_role(self, role: str) -> str:
        """OpenAI 角色映射为 Cohere 角色"""
        if role == "assistant":
            return "CHATBOT"
        return str(role).upper()

    def flatten_content(self, content: Any) -> str:
        """
        提取消息的文本内容

        Args:
            content: 字符串或 OpenAI content part 列表

        Returns:
            纯文本；列表形式时拼接所有 text 段
        """
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            texts = []
            for part in content:
                if isinstance(part, ContentPart):
                    part = part.model_dump()
                if isinstance(part, str):
                    texts.append(part)
                elif isinstance(part, dict) and part.get("type", "text") == "text" and isinstance(part.get("text"), str):
                    texts.append(part["text"])
                else:
                    debug_log("[MESSAGE] 忽略非文本内容段", part=str(part)[:100])
            return "".join(texts)
        # 数字、对象等非标准内容按 JSON 文本发送
        return orjson.dumps(content, default=str).decode("utf-8")

    def split_messages(self, messages: List[Message]) -> Tuple[List[ChatHistoryEntry], str]:
        """
        拆分消息列表

        Args:
            messages: 客户端消息列表（至少一条）

        Returns:
            (chat_history, 最后一条消息的文本)
        """
        history = [
            ChatHistoryEntry(role=self.map_role(msg.role), message=self.flatten_content(msg.content))
            for msg in messages[:-1]
        ]
        current = self.flatten_content(messages[-1].content) if messages else ""
        return history, current


# 全局单例实例
message_processor = MessageProcessor()
