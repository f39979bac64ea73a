import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Union, Dict, Any


class Message(BaseModel):
    role: str = "user"
    content: Union[str, List[Dict[str, Any]], None] = None


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[Message] = []
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class HistoryMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    role: str
    content: str
    created_at: datetime.datetime = Field(alias="createdAt")


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[HistoryMessage]
    session_id: str = Field(alias="sessionId")
