"""
Application data models
"""

from typing import Dict, List, Optional, Any, Union
from pydantic import BaseModel, ConfigDict, Field


class ContentPart(BaseModel):
    """Content part model for OpenAI's new content format"""
    model_config = ConfigDict(extra="allow")

    type: str
    text: Optional[str] = None


class Message(BaseModel):
    """Chat message model"""
    model_config = ConfigDict(extra="allow")

    role: str = "user"
    content: Optional[Union[str, List[ContentPart]]] = None


class ChatHistoryEntry(BaseModel):
    """Cohere chat_history 条目"""
    role: str
    message: str


class UpstreamRequest(BaseModel):
    """Cohere /v1/chat 请求体"""

    chat_history: List[ChatHistoryEntry] = []
    message: str = ""
    model: str
    stream: bool = False
    connectors: Optional[List[Dict[str, Any]]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    # 客户端透传的顶层字段（采样参数等），序列化时覆盖同名字段
    passthrough: Dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """序列化为上游 JSON，未设置的 connectors/tools 不发送"""
        payload = self.model_dump(exclude={"passthrough"}, exclude_none=True)
        payload.update(self.passthrough)
        return payload
