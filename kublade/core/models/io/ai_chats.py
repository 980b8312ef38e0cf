"""
AI chat I/O models.

These schemas are published in the OpenAPI document for API consumers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AiChatMessageRead(BaseModel):
    """A single message of an AI chat."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Message UUID")
    ai_chat_id: str = Field(description="UUID of the chat the message belongs to")
    role: Literal["user", "assistant", "system"]
    content: str
    key: Optional[str] = Field(default=None, description="Optional stable key for system context messages")
    protected: bool = Field(default=False, description="Protected messages cannot be edited or removed")
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
