from typing import Optional

from pydantic import BaseModel, Field

from portal.schemas.common import ORMRead


class CommentCreate(BaseModel):
    body: str = Field(min_length=1)


class CommentRead(ORMRead):
    id: str
    ticket_id: str
    user_id: str
    body: str
    created_at: str
    author_name: Optional[str] = None
    author_role: Optional[str] = None
