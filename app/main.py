from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.auth.roles_router import router as roles_router
from app.api.v1.discounts.router import router as discounts_router
from app.api.v1.fee_structures.router import router as fee_structures_router
from app.api.v1.invoices.router import router as invoices_router
from app.api.v1.payments.router import router as payments_router
from app.api.v1.reports.router import router as reports_router
from app.api.v1.students.router import router as students_router
from app.core.config import settings
from app.core.logging import configure_logging, get_logger
from app.core.sequences import ensure_sequences
from app.db.session import AsyncSessionLocal, init_models

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    async with AsyncSessionLocal() as db:
        await ensure_sequences(db)
    logger.info("startup_complete", extra={"report_timezone": settings.report_timezone})
    yield


def create_app(use_lifespan: bool = True) -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Fee Ledger", lifespan=lifespan if use_lifespan else None)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(roles_router)
    app.include_router(students_router)
    app.include_router(fee_structures_router)
    app.include_router(discounts_router)
    app.include_router(invoices_router)
    app.include_router(payments_router)
    app.include_router(reports_router)

    return app


app = create_app()
