"""
Recycle ERP Ledger: FastAPI application.

This is the entry point for the application.
Logging is configured and all routers are registered here.
"""

from fastapi import FastAPI

from recycle_erp.config import get_settings
from recycle_erp.logging_config import configure_logging
from recycle_erp.api.health import router as health_router
from recycle_erp.api.ledger import router as ledger_router
from recycle_erp.api.items import router as items_router
from recycle_erp.api.purchases import router as purchases_router
from recycle_erp.api.invoices import router as invoices_router
from recycle_erp.api.production import router as production_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Accounting and costing core for a used-clothing recycling "
        "business: "
        "double-entry ledger, moving average costing, landed cost "
        "and sales invoice posting"
    ),
)

# Register routers
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(items_router)
app.include_router(purchases_router)
app.include_router(invoices_router)
app.include_router(production_router)
