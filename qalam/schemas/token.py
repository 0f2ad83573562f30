from pydantic import BaseModel
from typing import Optional
from qalam.schemas.user import UserOut

class AuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserOut


class TokenData(BaseModel):
    user_id: Optional[int] = None
