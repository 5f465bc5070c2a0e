"""
SheetMap HTTP service.

Exposes the import mapping engine over FastAPI; ``app`` is the ASGI
application.
"""
from fastapi import FastAPI

from .api.routers import imports
from .core.config import settings
from .core.logging_config import configure_logging

APP_NAME = "SheetMap API"
APP_VERSION = "0.1.0"

configure_logging(settings.log_level, trace_cells=settings.log_cell_trace)

app = FastAPI(
    title=APP_NAME,
    description="Map decoded spreadsheet rows onto a schema graph of nested records",
    version=APP_VERSION,
    debug=settings.debug,
)
app.include_router(imports.router)


@app.get("/")
async def root():
    return {"message": APP_NAME, "version": APP_VERSION}
