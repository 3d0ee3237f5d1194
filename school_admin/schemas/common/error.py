from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class ErrorResponse(BaseModel):
    """Envelope returned for every handled error"""
    model_config = ConfigDict(from_attributes=True)

    success: bool = False
    error_code: str
    message: str
    status_code: int
    errors: Dict[str, List[str]] = {}
    details: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    message: str
