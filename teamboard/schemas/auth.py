# teamboard/schemas/auth.py
from pydantic import BaseModel, EmailStr, Field


class RegisterIn(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)


class LoginIn(BaseModel):
    # username or email
    login: str = Field(min_length=1, max_length=255)
    password: str


class OAuthIn(BaseModel):
    token: str = Field(min_length=1)


class IdentityIn(BaseModel):
    userId: str = Field(min_length=1)
    username: str = ""
    email: str | None = None


class IssueSessionIn(BaseModel):
    user: IdentityIn


class IdentityOut(BaseModel):
    userId: str
    username: str
    email: str | None = None


class SessionStartedOut(BaseModel):
    message: str
    user: IdentityOut


class MessageOut(BaseModel):
    message: str


class CsrfOut(BaseModel):
    csrfToken: str
