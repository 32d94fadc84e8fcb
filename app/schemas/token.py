# app/schemas/token.py
from pydantic import BaseModel
from typing import Optional


class TokenPayload(BaseModel):
    sub: str  # "sub" is the standard claim for subject (user ID)
    name: Optional[str] = None
    role: str = "user"  # 'user' or 'admin'
    exp: int  # Standard claim for expiration time

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        return self.name or self.sub

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
