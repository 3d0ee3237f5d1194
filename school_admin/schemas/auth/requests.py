from pydantic import BaseModel, EmailStr, Field


# Login Request Model - For logging in a user
class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
