"""Map the domain error taxonomy onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from coinbox.core.exceptions import CoinboxError, PipelineError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CoinboxError)
    async def coinbox_error_handler(request: Request, exc: CoinboxError):
        content = {"error": type(exc).__name__, "message": exc.message}
        if isinstance(exc, PipelineError):
            content["failed_step"] = exc.step_name
            content["completed_steps"] = exc.completed_steps
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=content)


__all__ = ["register_error_handlers"]
