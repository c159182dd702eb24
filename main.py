from __future__ import annotations

from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Request

from zad import db
from zad import settings as settings_mod
from zad.api_models import DecisionResponse, JobStatus, NodeRequest, TickResponse
from zad.artifacts import ArtifactFetcher
from zad.convergence import decide
from zad.deployer import DeploymentTrigger, HttpDeploymentEngine
from zad.models import NodeType, TickResult, Version, ZoneIdentity
from zad.reconciler import JOB_NAME, JobControl, PeriodicJob, ReconciliationCycle


def build_job() -> PeriodicJob:
    s = settings_mod.settings
    cycle = ReconciliationCycle(
        nodes=db.SqliteNodeRepository(),
        fetcher=ArtifactFetcher(s.artifact_url_prefix, timeout_s=s.fetch_timeout_s),
        trigger=DeploymentTrigger(HttpDeploymentEngine(s.engine_url)),
        zone=ZoneIdentity(s.system, s.region, s.environment),
        deploy_timeout_s=s.deploy_timeout_s,
    )
    return PeriodicJob(JOB_NAME, cycle.tick, interval_s=s.poll_interval_s, job_control=JobControl())


def _tick_response(r: TickResult) -> TickResponse:
    return TickResponse(outcome=r.outcome, ok=r.ok, message=r.message, version=r.version)


def create_app(job: PeriodicJob | None = None) -> FastAPI:
    app = FastAPI(title="Zone Application Deployer")
    app.state.job = job

    @app.on_event("startup")
    def startup() -> None:
        db.init_db()
        if app.state.job is None:
            app.state.job = build_job()
        if settings_mod.settings.autostart:
            app.state.job.start()

    @app.on_event("shutdown")
    def shutdown() -> None:
        if app.state.job is not None:
            app.state.job.stop()

    def _job(request: Request) -> PeriodicJob:
        return request.app.state.job

    @app.get("/nodes")
    def list_nodes() -> list[dict]:
        return [asdict(r) for r in db.list_node_rows()]

    @app.put("/nodes/{hostname}")
    def put_node(hostname: str, req: NodeRequest) -> dict:
        row = db.upsert_node(
            hostname,
            NodeType(req.type),
            Version.from_string(req.current_version) if req.current_version else None,
            Version.from_string(req.wanted_version) if req.wanted_version else None,
        )
        return asdict(row)

    @app.delete("/nodes/{hostname}")
    def delete_node(hostname: str) -> dict:
        if not db.delete_node(hostname):
            raise HTTPException(status_code=404, detail=f"Unknown node '{hostname}'")
        return {"deleted": hostname}

    @app.get("/decision", response_model=DecisionResponse)
    def get_decision() -> DecisionResponse:
        decision = decide(db.SqliteNodeRepository().list_nodes())
        if not decision.should_deploy:
            return DecisionResponse(action="none")
        return DecisionResponse(action="deploy", version=decision.target.to_full_string())

    @app.post("/maintenance/tick", response_model=TickResponse)
    def run_tick(request: Request) -> TickResponse:
        return _tick_response(_job(request).run_once())

    @app.get("/maintenance", response_model=JobStatus)
    def job_status(request: Request) -> JobStatus:
        job = _job(request)
        return JobStatus(
            name=job.name,
            active=job.job_control.is_active(job.name),
            running=job.is_running(),
            interval_s=job.interval_s,
            last_result=_tick_response(job.last_result) if job.last_result else None,
        )

    @app.post("/maintenance/enable", response_model=JobStatus)
    def enable(request: Request) -> JobStatus:
        job = _job(request)
        job.job_control.set_active(job.name, True)
        return job_status(request)

    @app.post("/maintenance/disable", response_model=JobStatus)
    def disable(request: Request) -> JobStatus:
        job = _job(request)
        job.job_control.set_active(job.name, False)
        return job_status(request)

    @app.get("/events")
    def events(limit: int = 50) -> list[dict]:
        return db.latest_events(max(1, min(1000, limit)))

    return app


app = create_app()
