"""Pydantic schemas for auth endpoints."""

from pydantic import BaseModel


class MeResponse(BaseModel):
    login: str
    github_id: int
    signed_in: bool = True


class LogoutResponse(BaseModel):
    signed_out: bool
