from __future__ import annotations

from dataclasses import dataclass, field
from threading import Event, Thread
from typing import Any, Callable, Protocol

import httpx

from .artifacts import CompressedBundle
from .models import ROUTING_APPLICATION_ID, ApplicationId, Version

Clock = Callable[[], float]


class DeployError(Exception):
    pass


class DeployTimeout(DeployError):
    pass


class TimeoutBudget:
    """Deadline for one remote call, measured on an injectable clock."""

    def __init__(self, clock: Clock, timeout_s: float):
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self.clock = clock
        self.timeout_s = float(timeout_s)
        self.deadline = clock() + self.timeout_s

    def time_left(self) -> float:
        return max(0.0, self.deadline - self.clock())

    def has_time_left(self) -> bool:
        return self.clock() < self.deadline

    def assert_not_timed_out(self) -> None:
        if not self.has_time_left():
            raise DeployTimeout(f"Timeout budget of {self.timeout_s}s exceeded")


@dataclass(frozen=True)
class PrepareParams:
    application_id: ApplicationId
    vespa_version: str
    timeout_budget: TimeoutBudget
    # Set when the caller gives up on the call; engines should stop early.
    cancelled: Event = field(default_factory=Event, compare=False)


class DeploymentEngine(Protocol):
    def deploy(self, bundle: CompressedBundle, params: PrepareParams) -> Any: ...


class DeploymentTrigger:
    """Issues a single, time-bounded deploy of the routing zone application."""

    def __init__(self, engine: DeploymentEngine, application_id: ApplicationId = ROUTING_APPLICATION_ID):
        self.engine = engine
        self.application_id = application_id
        self._inflight: Thread | None = None

    def deploy(self, bundle: CompressedBundle, version: Version, budget: TimeoutBudget) -> Any:
        if self._inflight is not None and self._inflight.is_alive():
            raise DeployError("previous deploy still in progress")
        params = PrepareParams(
            application_id=self.application_id,
            vespa_version=version.to_full_string(),
            timeout_budget=budget,
        )
        budget.assert_not_timed_out()

        outcome: dict[str, Any] = {}

        def _run() -> None:
            try:
                outcome["result"] = self.engine.deploy(bundle, params)
            except Exception as e:
                outcome["error"] = e

        # The engine call is synchronous; run it aside so the budget can abandon it.
        thr = Thread(target=_run, daemon=True, name=f"deploy-{self.application_id}-{params.vespa_version}")
        self._inflight = thr
        thr.start()
        thr.join(budget.time_left())

        if thr.is_alive():
            params.cancelled.set()
            raise DeployTimeout(
                f"Deploying {self.application_id} {params.vespa_version} did not complete "
                f"within {budget.timeout_s}s"
            )
        self._inflight = None
        err = outcome.get("error")
        if isinstance(err, DeployError):
            raise err
        if err is not None:
            raise DeployError(f"Deploying {self.application_id} failed: {type(err).__name__}: {err}") from err
        return outcome.get("result")


class HttpDeploymentEngine:
    """Deploys through a config server's prepareandactivate endpoint."""

    def __init__(self, base_url: str, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    def deploy(self, bundle: CompressedBundle, params: PrepareParams) -> Any:
        app = params.application_id
        timeout_s = params.timeout_budget.time_left()
        if timeout_s <= 0:
            raise DeployTimeout("No time left to deploy")
        if params.cancelled.is_set():
            raise DeployError("Deploy was cancelled")
        url = f"{self.base_url}/application/v2/tenant/{app.tenant}/prepareandactivate"
        query = {
            "applicationName": app.application,
            "instance": app.instance,
            "vespaVersion": params.vespa_version,
            "timeout": f"{timeout_s:.3f}",
        }
        try:
            with httpx.Client(timeout=timeout_s, follow_redirects=False, transport=self._transport) as client:
                resp = client.post(
                    url, params=query, content=bundle.data, headers={"Content-Type": bundle.content_type}
                )
        except httpx.TimeoutException as e:
            raise DeployTimeout(f"Deploy request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise DeployError(f"Deploy request to {url} failed: {type(e).__name__}: {e}") from e

        if not resp.is_success:
            raise DeployError(f"Deploy of {app} rejected: HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError:
            return {"message": resp.text}
