from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from aquadesk.core.exceptions import AquaDeskError
from aquadesk.logger_config import logger


def register_error_handlers(app: FastAPI):
    @app.exception_handler(AquaDeskError)
    async def handle_domain_error(request: Request, e: AquaDeskError):
        logger.warning(f"{request.method} {request.url.path} failed: {e.error_code} - {e.message}")
        return JSONResponse(
            status_code=e.status_code,
            content={
                "success": False,
                "message": e.message,
                "error": e.error_code,
                "status_code": e.status_code
            }
        )

    @app.exception_handler(Exception)
    async def handle_exception(request: Request, e: Exception):
        # Log the exception with traceback
        logger.exception("Unhandled exception occurred")

        # Handle all other exceptions (coding, DB errors, etc.)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "message": "Internal Server Error",
                "details": str(e),
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
            }
        )
