from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
import uuid

def gen_id() -> str:
    return str(uuid.uuid4())

class TimeStamped(BaseModel):
    model_config = ConfigDict(extra="ignore")  # tolère d'anciennes clés dans les JSON

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def touch(self):
        object.__setattr__(self, "updated_at", datetime.now())

class SoftDeletable(TimeStamped):
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
