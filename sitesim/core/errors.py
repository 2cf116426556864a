import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sitesim.engine.errors import DataIntegrityError, GameError

logger = logging.getLogger(__name__)


def error_body(exc: GameError) -> dict:
    return {
        "error": {
            "code": exc.code,
            "message": exc.message,
            "details": exc.details,
        }
    }


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError):
        if isinstance(exc, DataIntegrityError):
            logger.error(f"❌ Data integrity failure on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status, content=error_body(exc))

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if app.debug else "Internal server error",
                    "details": {},
                }
            },
        )
