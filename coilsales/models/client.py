from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from .common import gen_id

class Client(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=gen_id)
    name: str
    company: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
