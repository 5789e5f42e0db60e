"""Pydantic schemas for the chat payload accepted on /chat."""
from typing import Any, List, Optional, Union

from pydantic import BaseModel, model_validator
from pydantic_core import PydanticCustomError

ALLOWED_ROLES = ("system", "user", "assistant", "tool")


def _invalid_format(reason: str) -> PydanticCustomError:
    return PydanticCustomError("invalid_request_format", "Invalid request format. {reason}", {"reason": reason})


class ChatMessage(BaseModel):
    role: str
    content: Union[str, List[Any]]

    class Config:
        extra = "allow"


class ChatPayload(BaseModel):
    model: Optional[str] = None
    messages: List[ChatMessage]

    class Config:
        # Unknown fields go to the upstream verbatim.
        extra = "allow"

    @model_validator(mode="before")
    @classmethod
    def check_messages(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        messages = data.get("messages")
        if not isinstance(messages, list):
            raise _invalid_format("Missing or invalid messages array")
        if not messages:
            raise _invalid_format("Messages array cannot be empty")
        for message in messages:
            if not isinstance(message, dict) or not message.get("role") or not message.get("content"):
                raise _invalid_format("Each message must have role and content")
            if message["role"] not in ALLOWED_ROLES:
                raise _invalid_format("Invalid message role")
        return data
