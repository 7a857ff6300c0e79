# app/schemas/activity_schemas.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional, List

class UserActivityOut(BaseModel):
    id: int
    user_id: Optional[str] = None
    username: Optional[str] = None
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class UserActivityListResponse(BaseModel):
    message: str
    total: int
    data: List[UserActivityOut]
