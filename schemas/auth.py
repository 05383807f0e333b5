"""
Pydantic schemas for registration and login.
"""
from pydantic import BaseModel, Field, ConfigDict

from models import UserRole


class RegisterRequest(BaseModel):
     email: str = Field(..., min_length=3, max_length=255)
     password: str = Field(..., min_length=8, max_length=72)
     full_name: str = Field(..., min_length=1, max_length=200)
     role: UserRole = Field(default=UserRole.PATIENT, description="Single role assigned at signup")


class LoginRequest(BaseModel):
     email: str
     password: str


class UserResponse(BaseModel):
     id: int
     email: str
     full_name: str
     role: UserRole

     model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
     token: str
     user: UserResponse
