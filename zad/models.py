from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

VERSION_RE = re.compile(r"^(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.([A-Za-z0-9_\-]+))?$")


@dataclass(frozen=True, order=True)
class Version:
    """Platform version: major.minor.micro with an optional qualifier."""

    major: int = 0
    minor: int = 0
    micro: int = 0
    qualifier: str = ""

    @classmethod
    def from_string(cls, raw: str) -> Version:
        m = VERSION_RE.match(raw.strip())
        if not m:
            raise ValueError(f"Invalid version '{raw}'. Expected major[.minor[.micro[.qualifier]]].")
        major, minor, micro, qualifier = m.groups()
        return cls(int(major), int(minor or 0), int(micro or 0), qualifier or "")

    def to_full_string(self) -> str:
        s = f"{self.major}.{self.minor}.{self.micro}"
        if self.qualifier:
            s += f".{self.qualifier}"
        return s

    def __str__(self) -> str:
        return self.to_full_string()


class NodeType(str, Enum):
    config = "config"
    proxy = "proxy"
    tenant = "tenant"
    host = "host"
    confighost = "confighost"
    proxyhost = "proxyhost"
    controller = "controller"


@dataclass(frozen=True)
class Node:
    hostname: str
    type: NodeType
    # Version the node reports it is running.
    current_version: Version | None = None
    # Version assigned to the node's cluster membership; None when unallocated.
    wanted_version: Version | None = None


@dataclass(frozen=True)
class ZoneIdentity:
    system: str
    region: str
    environment: str


@dataclass(frozen=True)
class ApplicationId:
    tenant: str
    application: str
    instance: str = "default"

    def serialized_form(self) -> str:
        return f"{self.tenant}:{self.application}:{self.instance}"

    def __str__(self) -> str:
        return self.serialized_form()


HOSTED_VESPA_TENANT = "hosted-vespa"

# The zone application is owned by the platform, not by a tenant.
ROUTING_APPLICATION_ID = ApplicationId(HOSTED_VESPA_TENANT, "routing", "default")


@dataclass(frozen=True)
class DeployDecision:
    target: Version | None = None

    @classmethod
    def deploy(cls, version: Version) -> DeployDecision:
        return cls(target=version)

    @property
    def should_deploy(self) -> bool:
        return self.target is not None


NO_ACTION = DeployDecision()


@dataclass(frozen=True)
class TickResult:
    outcome: str  # no_action|deployed|fetch_failed|deploy_failed|error|disabled
    message: str
    version: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome in {"no_action", "deployed", "disabled"}
