from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

class UserBase(BaseModel):
    name: str
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=6, description="Password (at least 6 characters)")

class UserUpdateMe(BaseModel):
    name: Optional[str] = Field(None, description="New display name")
    email: Optional[EmailStr] = Field(None, description="New e-mail")

class UserOut(UserBase):
    id: UUID
    role: str
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True

class ForgotPasswordIn(BaseModel):
    email: EmailStr

class ResetPasswordIn(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, alias="newPassword")

    class Config:
        populate_by_name = True
