from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from stakeledger.api.v1.ledger import router as ledger_router
from stakeledger.domains.ledger.errors import LedgerError
from stakeledger.domains.ledger.service import LedgerService
from stakeledger.domains.ledger.state import build_state
from stakeledger.settings import DEBUG, LEDGER_STORAGE
from stakeledger.utils.logging import configure_logging


configure_logging(debug=DEBUG)

logger = structlog.get_logger()


def create_app(ledger: Optional[LedgerService] = None) -> FastAPI:
    """Builds the API; without an injected ledger one is built from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "ledger", None) is None:
            logger.info("ledger_starting", storage=LEDGER_STORAGE)
            try:
                app.state.ledger = LedgerService(build_state())
            except Exception as e:
                logger.critical("ledger_start_failed", error=str(e), exc_info=True)
                raise
        logger.info("ledger_ready")
        yield
        logger.info("ledger_stopped")

    app = FastAPI(
        title="StakeLedger API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.ledger = ledger

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        logger.info("ledger_error", path=request.url.path, code=exc.code, detail=exc.msg)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.msg})

    app.include_router(ledger_router, prefix="/api/v1", tags=["Ledger"])
    app.mount("/metrics", make_asgi_app())

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "service": "ledger"}

    return app


app = create_app()
