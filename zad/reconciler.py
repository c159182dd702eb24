from __future__ import annotations

import time
from threading import Event, Lock, Thread
from typing import Callable, Protocol

from . import db
from .artifacts import ArtifactFetcher, FetchError
from .convergence import decide
from .deployer import Clock, DeployError, DeploymentTrigger, TimeoutBudget
from .models import Node, TickResult, ZoneIdentity

EventSink = Callable[..., None]

JOB_NAME = "ZoneApplicationDeployer"


class NodeRepository(Protocol):
    def list_nodes(self) -> list[Node]: ...


class ReconciliationCycle:
    """One decide -> fetch -> deploy pass for the zone application.

    Callers must not run two ticks of the same cycle concurrently.
    """

    def __init__(
        self,
        nodes: NodeRepository,
        fetcher: ArtifactFetcher,
        trigger: DeploymentTrigger,
        zone: ZoneIdentity,
        deploy_timeout_s: float = 60.0,
        clock: Clock = time.monotonic,
        log_event: EventSink = db.log_event,
    ):
        if deploy_timeout_s <= 0:
            raise ValueError("deploy_timeout_s must be > 0")
        self.nodes = nodes
        self.fetcher = fetcher
        self.trigger = trigger
        self.zone = zone
        self.deploy_timeout_s = deploy_timeout_s
        self.clock = clock
        self._log_event = log_event
        self.state = "idle"

    def tick(self) -> TickResult:
        try:
            return self._tick()
        except Exception as e:
            msg = f"Zone application tick failed: {type(e).__name__}: {e}"
            self._log("ERROR", msg)
            return TickResult("error", msg)
        finally:
            self.state = "idle"

    def _tick(self) -> TickResult:
        self.state = "deciding"
        decision = decide(self.nodes.list_nodes())
        if not decision.should_deploy:
            msg = "Zone application is converged or config servers disagree; nothing to deploy"
            self._log("INFO", msg)
            return TickResult("no_action", msg)

        version = decision.target
        full = version.to_full_string()
        self._log("INFO", f"Deploying zone application {full}", version=full)

        self.state = "fetching"
        try:
            bundle = self.fetcher.locate(self.zone, version)
        except FetchError as e:
            msg = f"Could not fetch zone application {full}: {e}"
            self._log("ERROR", msg, version=full)
            return TickResult("fetch_failed", msg, full)

        self.state = "deploying"
        budget = TimeoutBudget(self.clock, self.deploy_timeout_s)
        try:
            self.trigger.deploy(bundle, version, budget)
        except DeployError as e:
            msg = f"Deploy of zone application {full} failed: {type(e).__name__}: {e}"
            self._log("ERROR", msg, version=full)
            return TickResult("deploy_failed", msg, full)

        msg = f"Successfully deployed zone application {full}"
        self._log("INFO", msg, version=full)
        return TickResult("deployed", msg, full)

    def _log(self, level: str, message: str, version: str | None = None) -> None:
        self._log_event(level, message, job=JOB_NAME, version=version)


class JobControl:
    """Enable/disable switch for named periodic jobs, persisted in sqlite."""

    def is_active(self, name: str) -> bool:
        return db.is_job_active(name)

    def set_active(self, name: str, active: bool) -> None:
        db.set_job_active(name, active)
        db.log_event("INFO", f"Job {'enabled' if active else 'disabled'}", job=name)


class PeriodicJob:
    """Runs a tick callback on a fixed interval, one tick at a time."""

    def __init__(
        self,
        name: str,
        tick: Callable[[], TickResult],
        interval_s: float,
        job_control: JobControl | None = None,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.name = name
        self.tick = tick
        self.interval_s = interval_s
        self.job_control = job_control or JobControl()
        self.last_result: TickResult | None = None
        self._run_lock = Lock()
        self._stop_event: Event | None = None
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive() and not self._stop_event.is_set():
            return
        # Each loop thread owns its stop event.
        self._stop_event = Event()
        self._thr = Thread(target=self._loop, args=(self._stop_event,), daemon=True, name=self.name)
        self._thr.start()

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    def is_running(self) -> bool:
        return bool(self._thr and self._thr.is_alive())

    def run_once(self) -> TickResult:
        with self._run_lock:
            if not self.job_control.is_active(self.name):
                result = TickResult("disabled", f"Job {self.name} is disabled")
            else:
                result = self.tick()
            self.last_result = result
            return result

    def _loop(self, stop_event: Event) -> None:
        db.log_event("INFO", "Job started", job=self.name)
        while not stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                db.log_event("ERROR", f"Job tick failed: {type(e).__name__}: {e}", job=self.name)
            stop_event.wait(self.interval_s)
