# main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from providers.memory import MemoryProvider
from routes import auth, questions, reports, rpc
from services.errors import (
    InvalidCredentials,
    LMSError,
    NotFound,
    PermissionDenied,
    TransportFailure,
    ValidationFailed,
)

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFound: 404,
    ValidationFailed: 400,
    InvalidCredentials: 401,
    PermissionDenied: 403,
    TransportFailure: 502,
}


def build_store():
    if config.LMS_PROVIDER == "mongo":
        from providers.mongo import MongoProvider
        return MongoProvider(seed=config.LMS_SEED)
    return MemoryProvider(data_file=config.LMS_DATA_FILE, seed=config.LMS_SEED)


def create_app(store=None) -> FastAPI:
    if not config.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not set")
    app = FastAPI(title="Classroom LMS")
    app.state.store = store or build_store()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(rpc.router)
    app.include_router(reports.router)
    app.include_router(questions.router)

    @app.exception_handler(LMSError)
    async def lms_error_handler(request: Request, exc: LMSError):
        status = STATUS_CODES.get(type(exc), 400)
        logger.warning(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
        return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})

    @app.on_event("startup")
    async def startup_event():
        await app.state.store.init()
        logger.info(f"Store ready: {type(app.state.store).__name__}")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
