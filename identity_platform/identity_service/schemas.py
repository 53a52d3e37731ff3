from pydantic import BaseModel, ConfigDict, Field

from typing import List, Optional

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^0[0-9]{9,11}$"


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=2, max_length=255)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    phone: str = Field(pattern=PHONE_PATTERN, min_length=10, max_length=12)
    password: str = Field(min_length=6, max_length=100)
    confirm_password: str


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    full_name: str
    message: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str
    email: str
    full_name: Optional[str] = None
    role_id: int


class RefreshTokenRequest(BaseModel):
    refresh_token: str = ""


class MessageResponse(BaseModel):
    message: str


class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class UserOut(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    status: str
    email_verified: bool
    role: RoleOut


class UserListResponse(BaseModel):
    users: List[UserOut]


# Admin user management; blank fields are rejected by the service
class CreateUserRequest(BaseModel):
    full_name: str = ""
    email: str = ""
    password: str = ""
    role_name: str = ""
    phone: Optional[str] = None


class UpdateUserRequest(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None
    status: Optional[str] = None
