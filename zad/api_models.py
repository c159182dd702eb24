from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .models import NodeType, Version


class NodeRequest(BaseModel):
    type: NodeType = Field(..., description="Node role, e.g. config, proxy, tenant")
    current_version: str | None = Field(None, description="Version the node reports running")
    wanted_version: str | None = Field(None, description="Version from the node's cluster membership")

    @field_validator("current_version", "wanted_version")
    @classmethod
    def _valid_version(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        return Version.from_string(v).to_full_string()


class DecisionResponse(BaseModel):
    action: str  # none|deploy
    version: str | None = None


class TickResponse(BaseModel):
    outcome: str
    ok: bool
    message: str
    version: str | None = None


class JobStatus(BaseModel):
    name: str
    active: bool
    running: bool
    interval_s: float
    last_result: TickResponse | None = None
