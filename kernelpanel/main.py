import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from strawberry.fastapi import GraphQLRouter

from kernelpanel.api.v1.router import api_router
from kernelpanel.core.config import get_settings
from kernelpanel.core.logging_config import configure_logging
from kernelpanel.core.rate_limit import RateLimitMiddleware
from kernelpanel.db.init_db import init_db
from kernelpanel.graphql.schema import get_context, schema
from kernelpanel.services.validation import ConfigValidationError, errors_from_pydantic

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    logger.info("%s started (%s)", settings.app_name, settings.app_env)
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


def validation_response(errors) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "validation_error", "errors": [error.to_dict() for error in errors]},
    )


@app.exception_handler(ConfigValidationError)
async def config_validation_handler(_: Request, exc: ConfigValidationError) -> JSONResponse:
    return validation_response(exc.errors)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return validation_response(errors_from_pydantic(exc.errors()))


@app.exception_handler(IntegrityError)
async def integrity_handler(_: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error: %s", exc.orig)
    return JSONResponse(status_code=409, content={"error": "integrity_error", "detail": str(exc.orig)})


app.include_router(api_router)
app.include_router(GraphQLRouter(schema, context_getter=get_context), prefix="/graphql")
