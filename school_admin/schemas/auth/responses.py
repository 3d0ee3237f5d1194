# school_admin/schemas/auth/responses.py
from pydantic import BaseModel, ConfigDict, EmailStr
from typing import Optional


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: EmailStr
    name: str
    role: str
    is_active: bool
    school_id: Optional[int] = None


# Response for a successful user login
class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse

    model_config = {
        "json_schema_extra": {
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 1800,
                "user": {
                    "id": 1,
                    "email": "admin@school.ac.ke",
                    "name": "Jane Wanjiku",
                    "role": "school_admin",
                    "is_active": True,
                    "school_id": 1
                }
            }
        }
    }
