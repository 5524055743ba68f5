import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import router as api_router
from app.core.config import settings
from app.core.database import engine
from app.models.base import Base
from app.schemas.course import CatalogIssueOut
from app.services.errors import CatalogError, ConfigurationError, PlanningOperationError
import app.models  # noqa: F401

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="TermPlan API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)


@app.exception_handler(CatalogError)
def catalog_error_handler(request: Request, exc: CatalogError):
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Invalid course catalog.",
            "issues": [
                CatalogIssueOut(code=issue.code, course_id=issue.course_id, message=issue.message).model_dump()
                for issue in exc.issues
            ],
        },
    )


@app.exception_handler(ConfigurationError)
def configuration_error_handler(request: Request, exc: ConfigurationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(PlanningOperationError)
def operation_error_handler(request: Request, exc: PlanningOperationError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.get("/health")
def health_check():
    return {"status": "ok"}
