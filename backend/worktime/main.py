from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from worktime.core.audit.service import AuditMiddleware
from worktime.core.auth.router import router as auth_router
from worktime.core.companies.router import router as companies_router
from worktime.core.processes.router import router as processes_router
from worktime.core.rbac.router import router as rbac_router
from worktime.core.reassignment.router import router as rpc_router
from worktime.core.timesheets.router import router as timesheets_router
from worktime.logging_config import setup_logging
from worktime.settings import get_settings

settings = get_settings()


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Worktime API",
        version="0.1.0",
        docs_url="/docs" if settings.APP_DEBUG else None,
        redoc_url="/redoc" if settings.APP_DEBUG else None,
    )

    app.add_middleware(AuditMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_DEBUG else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(companies_router)
    app.include_router(rbac_router)
    app.include_router(processes_router)
    app.include_router(timesheets_router)
    app.include_router(rpc_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
