from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class PostData(BaseModel):
    id: int
    userid: int
    name: str
    description: str
    imgs: List[str] = []
    created_at: Optional[datetime] = None


class PostWithUser(BaseModel):
    id: int
    user_id: int
    firstname: str
    lastname: str
    email: str
    profile: str
    name: str
    imgs: List[str] = []
    description: str
    created_at: Optional[datetime] = None
