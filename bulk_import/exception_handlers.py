from fastapi import Request
from fastapi.responses import JSONResponse

from bulk_import.exceptions import (
    AppError,
    CheckpointError,
    ConfigError,
    ImportAbortedError,
    NotFoundError,
    RetryExhaustedError,
    TransactionError,
    TransformError,
    UnauthorizedError,
    ValidationError,
)


def _error_body(exc: AppError) -> dict:
    return {"error": exc.code, "message": exc.message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=500, content=_error_body(exc))


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_error_body(exc))


async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return JSONResponse(status_code=401, content=_error_body(exc))


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    content = _error_body(exc)
    content["field"] = exc.field
    return JSONResponse(status_code=422, content=content)


async def transform_error_handler(request: Request, exc: TransformError) -> JSONResponse:
    content = _error_body(exc)
    content["details"] = exc.details
    return JSONResponse(status_code=422, content=content)


async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(exc))


async def upstream_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=502, content=_error_body(exc))


async def checkpoint_error_handler(request: Request, exc: CheckpointError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_error_body(exc))


async def import_aborted_handler(request: Request, exc: ImportAbortedError) -> JSONResponse:
    content = _error_body(exc)
    content["batch"] = exc.batch_index
    content["result"] = exc.result.model_dump()
    return JSONResponse(status_code=409, content=content)


def register_exception_handlers(app):
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(TransformError, transform_error_handler)
    app.add_exception_handler(ConfigError, config_error_handler)
    app.add_exception_handler(TransactionError, upstream_error_handler)
    app.add_exception_handler(RetryExhaustedError, upstream_error_handler)
    app.add_exception_handler(CheckpointError, checkpoint_error_handler)
    app.add_exception_handler(ImportAbortedError, import_aborted_handler)
    app.add_exception_handler(AppError, app_error_handler)
