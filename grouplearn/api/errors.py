"""
Translation of lifecycle errors into HTTP responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from grouplearn.core.errors import RequestNotFound, TransitionError

STATUS_CODES = {
    "validation_error": 422,
    "forbidden": 403,
    "not_a_member": 403,
    "invalid_transition": 409,
    # Only reached once every retry has lost its write
    "conflict": 409,
    "terminal": 410,
}


async def transition_error_handler(request: Request, exc: TransitionError):
    return JSONResponse(
        status_code=STATUS_CODES.get(exc.kind, 400),
        content={"detail": exc.message, "kind": exc.kind},
    )


async def request_not_found_handler(request: Request, exc: RequestNotFound):
    return JSONResponse(
        status_code=404,
        content={"detail": "Request not found", "kind": "not_found"},
    )


def add_exception_handlers(app: FastAPI) -> FastAPI:
    """
    Register handlers so that typed service errors surface as their
    human-readable messages.
    """
    app.add_exception_handler(TransitionError, transition_error_handler)
    app.add_exception_handler(RequestNotFound, request_not_found_handler)
    return app
