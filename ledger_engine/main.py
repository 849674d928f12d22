"""
Ledger Engine FastAPI application.

This is the entry point for the application.
All routers are registered here.
"""

import uvicorn
from fastapi import FastAPI

from ledger_engine.config import get_settings
from ledger_engine.logging_config import setup_logging
from ledger_engine.api.health import router as health_router
from ledger_engine.api.accounts import router as accounts_router
from ledger_engine.api.transactions import router as transactions_router
from ledger_engine.api.reports import router as reports_router

settings = get_settings()
setup_logging(settings.LOG_LEVEL)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry accounting ledger",
)

# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(reports_router)


if __name__ == "__main__":
    uvicorn.run(
        "ledger_engine.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
