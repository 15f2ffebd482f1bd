
from pydantic import BaseModel, ConfigDict

# Documented response shapes for the auth endpoints
class ErrorBody(BaseModel):
    error: str

class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    access_token: str
    scope: str | None = None
