from __future__ import annotations

from pydantic import BaseModel


class ResolutionRead(BaseModel):
    principal: str
    short_name: str
    source: str


class ResolutionError(BaseModel):
    principal: str
    error: str
    detail: str
