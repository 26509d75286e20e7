"""Pydantic models for API request/response serialization.

These models mirror the polfile dataclasses. Binary data travels as
hexadecimal text.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Entry models
# ---------------------------------------------------------------------------


class EntryResponse(BaseModel):
    """Mirrors polfile.models.entry.PolicyEntry."""

    key: str
    value_name: str = ""
    kind: str
    data: Any = None


class SetEntryRequest(BaseModel):
    """Create or update one entry of a policy file under the policy root."""

    path: str = Field(..., description="Policy file path relative to the policy root")
    key: str
    value_name: str = ""
    kind: str = "String"
    data: Any = None
    update_gpt_ini: Optional[bool] = None


class RemoveEntryRequest(BaseModel):
    """Delete one entry of a policy file under the policy root."""

    path: str = Field(..., description="Policy file path relative to the policy root")
    key: str
    value_name: str = ""
    update_gpt_ini: Optional[bool] = None


class ChangeResponse(BaseModel):
    """Whether the policy file was rewritten."""

    changed: bool


# ---------------------------------------------------------------------------
# gpt.ini models
# ---------------------------------------------------------------------------


class VersionBumpRequest(BaseModel):
    """Increment counters of a gpt.ini under the policy root."""

    path: str = Field(..., description="gpt.ini path relative to the policy root")
    scopes: list[str] = Field(..., min_length=1)


class VersionResponse(BaseModel):
    """A decoded gpt.ini version."""

    version: int
    machine: int
    user: int
