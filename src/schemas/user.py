# src/schemas/user.py

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6)

class LoginRequest(BaseModel):
    email: str
    password: str

class AuthResponse(BaseModel):
    token: str
    user_id: int
    username: str
    email: Optional[str] = None
    is_premium: bool = False
    is_deactivated: bool = False

class UserBasicOut(BaseModel):
    id: int
    username: str
    is_premium: bool

    class Config:
        from_attributes = True

class UserOut(BaseModel):
    id: int
    username: str
    email: Optional[str] = None
    bio: Optional[str] = None
    is_premium: bool
    is_deactivated: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class UpdateProfileRequest(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    bio: Optional[str] = Field(None, max_length=300)

class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)
    confirm_password: str

class DeleteAccountRequest(BaseModel):
    password: str

class PrivacySettingsOut(BaseModel):
    share_watches: bool
    share_ratings: bool
    share_notes: bool

    class Config:
        from_attributes = True

class UpdatePrivacySettingsRequest(BaseModel):
    share_watches: Optional[bool] = None
    share_ratings: Optional[bool] = None
    share_notes: Optional[bool] = None
