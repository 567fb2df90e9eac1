"""
FastAPI app
"""

import asyncio
import contextlib
from importlib.metadata import version

from fastapi import FastAPI

from grouplearn.service import scheduler as scheduler_service

from .dependencies import (
    DATABASE_MANAGER,
    SETTINGS,
    get_membership,
    get_sink,
    get_store,
    logger,
)
from .errors import add_exception_handlers
from .requests import request_app

settings = SETTINGS()


async def lifespan(app: FastAPI):
    await DATABASE_MANAGER.create_all()

    scheduler = None

    if settings.run_scheduler:
        scheduler = asyncio.create_task(
            scheduler_service.run_forever(
                store=get_store(),
                membership=get_membership(),
                sink=get_sink(),
                settings=settings,
                log=logger(),
            )
        )

    yield

    if scheduler is not None:
        scheduler.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scheduler

    await DATABASE_MANAGER.dispose()


app = FastAPI(
    lifespan=lifespan,
    title="Group Learning Requests API",
    summary="Lifecycle of collaborative tutoring session proposals: voting, enrollment, teacher selection and payment.",
    version=version("grouplearn"),
)

app = add_exception_handlers(app)

app.include_router(request_app, prefix="/requests")


@app.get("/health")
def health():
    return {"status": "healthy"}
