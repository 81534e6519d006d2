import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cashdesk.config import CORS_ORIGINS, LOG_LEVEL
from cashdesk.data.base import create_tables
from cashdesk.domain.errors import (
    CashdeskError,
    DuplicateFailure,
    InternalFailure,
    InvalidReference,
    NotFound,
    ValidationFailure,
)
from cashdesk.presentation.catalog_api import router as catalog_router
from cashdesk.presentation.movements_api import router as movements_router
from cashdesk.presentation.sync_api import router as sync_router
from cashdesk.presentation.user_api import router as auth_router

logging.basicConfig(
    level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

STATUS_FOR_ERROR = {
    ValidationFailure: 422,
    DuplicateFailure: 409,
    NotFound: 404,
    InvalidReference: 400,
    InternalFailure: 500,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


app = FastAPI(title="Cashdesk API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CashdeskError)
async def cashdesk_error_handler(request: Request, exc: CashdeskError):
    status_code = STATUS_FOR_ERROR.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_payload())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=InternalFailure("The store is unavailable").to_payload(),
    )


app.include_router(auth_router)
app.include_router(movements_router)
app.include_router(catalog_router)
app.include_router(sync_router)
