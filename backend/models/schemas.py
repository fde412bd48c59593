from pydantic import BaseModel
from typing import Optional


class MessageResponse(BaseModel):
    message: str


class SuccessResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    error: str
    kind: str
    field: Optional[str] = None
