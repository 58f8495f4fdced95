from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gridsight.config import settings
from gridsight.errors import InvalidConfigError, TableNotFoundError
from gridsight.logging_config import setup_logging
from gridsight.routes.analysis import router as analysis_router
from gridsight.routes.cleaning import router as cleaning_router
from gridsight.routes.tables import router as tables_router

setup_logging(
    level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
    log_file=settings.LOG_FILE,
    log_dir=settings.LOG_DIR,
)

app = FastAPI(title="GridSight API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidConfigError)
def invalid_config_handler(request: Request, exc: InvalidConfigError):
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "field": exc.field, "value": exc.value},
    )


@app.exception_handler(TableNotFoundError)
def table_not_found_handler(request: Request, exc: TableNotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.get("/")
def root():
    return {"message": "GridSight API is running", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"status": "healthy"}


app.include_router(tables_router)
app.include_router(analysis_router)
app.include_router(cleaning_router)
