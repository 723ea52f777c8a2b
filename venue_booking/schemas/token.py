# venue_booking/schemas/token.py
from pydantic import BaseModel
from typing import Optional


class TokenPayload(BaseModel):
    sub: str  # user id
    email: Optional[str] = None
    name: Optional[str] = None
    exp: Optional[int] = None

    model_config = {"from_attributes": True}
