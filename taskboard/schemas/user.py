from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserBase(BaseModel):
    email: str = Field(min_length=3)


class UserCreate(UserBase):
    password: str = Field(min_length=1)


class User(UserBase):
    id: str
    created_at: datetime

    class Config:
        from_attributes = True


class TokenData(BaseModel):
    email: Optional[str] = None


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User
