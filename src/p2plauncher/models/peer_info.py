"""Typed records for payloads coming from the peer module."""

from pydantic import BaseModel, Field


class PeerInfo(BaseModel):
    """Identity and connectivity of the local peer."""

    id: str = Field(min_length=1)
    addresses: list[str] = Field(default_factory=list)
    connected: list[str] = Field(default_factory=list)


class ConnectResult(BaseModel):
    ok: bool
    message: str
