from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.core.config import settings
from app.core.database import engine
from app.core.errors import PortalError
from app.core.logging_config import setup_logging
from app.models.base import Base
import app.models  # noqa: F401

logger = setup_logging()

app = FastAPI(title="Student Portal API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Page-Count"],
)

app.include_router(api_router)


@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    level = logger.error if exc.status_code >= 500 else logger.info
    level("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "retry": exc.retry},
    )


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)
    logger.info("Student portal API started (upstream: %s)", settings.backend_api_url)


@app.get("/health")
def health_check():
    return {"status": "ok"}
