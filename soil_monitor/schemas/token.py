from pydantic import BaseModel

from soil_monitor.schemas.user import UserOut

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class RegisterOut(Token):
    user: UserOut
