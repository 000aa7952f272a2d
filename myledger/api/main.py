"""Scheduler HTTP application"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.responses import Response

from myledger.api.middleware import MetricsMiddleware, RequestIDMiddleware
from myledger.api.v1 import accounts, bills, loans
from myledger.config import settings
from myledger.infrastructure.database.models import Base
from myledger.infrastructure.database.session import engine, get_db
from myledger.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Build the app with middleware, probes and the v1 routers"""
    app = FastAPI(
        title="MyLedger Scheduler",
        description="Recurring bills, autopay and loan amortization",
        version="0.1.0",
        lifespan=lifespan,
    )

    # last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check(db: Session = Depends(get_db)):
        db.execute(text("SELECT 1"))
        return {"status": "ok", "service": settings.service_name, "database": "ok"}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    for module, tag in ((bills, "bills"), (loans, "loans"), (accounts, "accounts")):
        app.include_router(module.router, prefix="/v1", tags=[tag])

    return app


app = create_app()
