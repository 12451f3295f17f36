# accountshop/schemas/session.py
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class AdminLogin(SQLModel):
    model_config = ConfigDict(extra="forbid")

    password: str = Field(min_length=1)


class AdminSessionRead(SQLModel):
    """
    Current admin session state as shown by the countdown widget.
    """

    token: str | None = None
    remaining_seconds: int
    countdown: str


class ThemePreference(SQLModel):
    model_config = ConfigDict(extra="forbid")

    theme: Literal["dark", "light"]
