# teamspace/schemas/auth.py
from pydantic import BaseModel, Field
from datetime import datetime

class LoginResponse(BaseModel):
    """
    LoginResponse — ответ на успешный логин.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Тип токена")
    expires_at: datetime = Field(..., description="Момент истечения токена (UTC)")
