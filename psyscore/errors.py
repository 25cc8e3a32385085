from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarHTTP
import logging

from .engine import DivisionByZeroError, MalformedFormulaError

logger = logging.getLogger("psyscore")

def install_error_handlers(app):
    @app.exception_handler(StarHTTP)
    async def http_exc(_: Request, exc: StarHTTP):
        return JSONResponse({"error": f"HTTP_{exc.status_code}", "detail": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(MalformedFormulaError)
    async def malformed_formula(_: Request, exc: MalformedFormulaError):
        return JSONResponse(
            {"error": "MALFORMED_FORMULA", "detail": str(exc), "term": exc.term, "slot": exc.slot},
            status_code=422,
        )

    @app.exception_handler(DivisionByZeroError)
    async def division_by_zero(_: Request, exc: DivisionByZeroError):
        return JSONResponse({"error": "DIVISION_BY_ZERO", "detail": str(exc)}, status_code=422)

    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse({"error": "INTERNAL_ERROR", "detail": "Unexpected error"}, status_code=500)
