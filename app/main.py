import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1.router import router as api_router
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.core.telemetry import setup_telemetry
from app.services.storage import LocalDiskBackend, select_storage_backend

setup_logging(settings.log_level)
log = logging.getLogger(__name__)

app = FastAPI(title="SpaLux API", version="0.1.0")

setup_telemetry(app)
app.include_router(api_router)

# Chosen once per process; request handlers get it through get_storage
app.state.storage = select_storage_backend(settings)
if isinstance(app.state.storage, LocalDiskBackend):
    app.mount("/uploads", StaticFiles(directory=app.state.storage.base), name="uploads")


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Something went wrong!"})
