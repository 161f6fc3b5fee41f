"""
Innkeeper - Main Application
============================

Dead man's switch monitor: jobs reserve a check-in SLA for an
(app, component) pair, check in while they are healthy, and the
coordinator node alerts on the pairs that went quiet.

Modules:
- Reservations: reservations, check-ins, snoozes, checkouts, failure alerts
- Cluster: node registry and coordinator discovery

Each module is split into interfaces (routers), application (services,
DTOs), domain (entities, rules) and infrastructure (SQLAlchemy, Slack,
peer probe, cluster config).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from innkeeper.config import settings
from innkeeper.core import RepositoryException, ResourceNotFoundException, ValidationException
from innkeeper.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from innkeeper.cluster.infrastructure import (
    ClusterConfigManager,
    HTTPCoordinatorProbe,
    SQLAlchemyNodeRepository,
)
from innkeeper.cluster.interfaces import cluster_router
from innkeeper.reservations.infrastructure import SlackClient, SLAScheduler
from innkeeper.reservations.interfaces import reservations_router
from innkeeper.reservations.services import FailureAlerter
from innkeeper.shared.api.middleware import (
    RequestContextMiddleware,
    not_found_handler,
    unhandled_exception_handler,
    validation_handler,
)
from innkeeper.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)

DESCRIPTION = """
Jobs and services reserve an SLA for an (app, component) pair and then
check in periodically. A pair that stays silent longer than its
reservation allows is reported as failing, and the coordinator node
raises an alert.

### Reservations

- `POST /reservation` - Create or update a reservation
- `GET /reservation` - List reservations with SLA status
- `GET /reservation/{app}/{component}` - One reservation
- `POST /checkin` - Check in
- `POST /snooze` - Pause alerting
- `POST /checkout` - Remove a reservation
- `GET /badguests` - Pairs with the most failure alerts

### Cluster

- `GET /nodes` - Registered nodes with their coordinator flag
- `GET /is-coordinator` - This node's coordinator flag

Time units: `seconds`, `minutes`, `hours`.
"""


async def register_self() -> None:
    """Add this node to the node table so peers can discover it."""
    if not settings.node_ip:
        logger.info("node_ip not configured, skipping node registration")
        return

    async with get_session_context() as session:
        node = await SQLAlchemyNodeRepository(session).register_node(
            settings.node_ip, settings.node_id
        )
    logger.info(
        "Node registered",
        extra={"ip_address": node.ip_address, "node_id": node.node_id}
    )


def build_evaluation_job(alerter: FailureAlerter):
    """Scheduler job: one failure evaluation in its own session."""

    async def run_failure_evaluation() -> None:
        try:
            async with get_session_context() as session:
                summary = await alerter.evaluate(session)
        except Exception as e:
            logger.error("Failure evaluation failed", extra={"error": str(e)})
            return
        if not summary["skipped"]:
            logger.info("Failure evaluation finished", extra=summary)

    return run_failure_evaluation


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup wires the database, cluster config, probe, Slack client and
    scheduler onto app.state; shutdown releases them in reverse order.

    An unreachable database does not stop startup: the node serves
    /is-coordinator and /health while database routes fail.
    """
    setup_logging(settings.log_level, settings.environment, settings.node_id)
    logger.info("Starting Innkeeper", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "node_ip": settings.node_ip
    })

    init_database()
    try:
        await create_tables()
        await register_self()
    except (SQLAlchemyError, RepositoryException, OSError) as e:
        logger.warning(f"Database unavailable, starting degraded: {e}")

    cluster_config = ClusterConfigManager(default_coordinator=settings.coordinator)
    cluster_config.load(settings.cluster_config_path)
    cluster_config.start_watching()

    coordinator_probe = HTTPCoordinatorProbe(
        peer_port=settings.peer_port,
        timeout_seconds=settings.peer_timeout_seconds
    )
    slack_client = SlackClient()
    if not slack_client.enabled:
        logger.info("Slack webhook not set, failure alerts are recorded only")

    alerter = FailureAlerter(
        is_coordinator=cluster_config.is_coordinator,
        slack_client=slack_client
    )

    scheduler = None
    if settings.sla_evaluation_interval > 0:
        scheduler = SLAScheduler(interval_seconds=settings.sla_evaluation_interval)
        await scheduler.start(build_evaluation_job(alerter))
    else:
        logger.info("Failure evaluation disabled by sla_evaluation_interval=0")

    app.state.cluster_config = cluster_config
    app.state.coordinator_probe = coordinator_probe
    app.state.slack_client = slack_client
    app.state.alerter = alerter
    app.state.scheduler = scheduler

    logger.info("Innkeeper ready", extra={"coordinator": cluster_config.is_coordinator()})

    yield

    logger.info("Stopping Innkeeper")
    if scheduler:
        await scheduler.stop()
    cluster_config.stop_watching()
    await coordinator_probe.close()
    await slack_client.close()
    await close_database()


app = FastAPI(
    title="Innkeeper API",
    description=DESCRIPTION,
    version=settings.app_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(ResourceNotFoundException, not_found_handler)
app.add_exception_handler(ValidationException, validation_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(reservations_router)
app.include_router(cluster_router)


# ========== Health ==========

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Database reachability, coordinator flag, scheduler and Slack state."""
    try:
        async with get_session_context() as session:
            await session.execute(text("SELECT 1"))
        database = "connected"
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        database = f"unavailable: {type(e).__name__}"

    state = request.app.state
    cluster_config = getattr(state, "cluster_config", None)
    scheduler = getattr(state, "scheduler", None)
    slack_client = getattr(state, "slack_client", None)

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {
            "database": database,
            "cluster_config": "loaded" if cluster_config else "not_loaded",
            "coordinator": cluster_config.is_coordinator() if cluster_config else settings.coordinator,
            "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
            "slack": "configured" if slack_client and slack_client.enabled else "not_configured",
        },
    }


@app.get("/", tags=["Health"])
async def root():
    """Liveness answer for load balancers."""
    return {
        "status": "A-OK!",
        "service": settings.app_name,
        "version": settings.app_version,
        "node_id": settings.node_id,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "innkeeper.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
