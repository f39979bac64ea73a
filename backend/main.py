import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from database import Base, build_engine, build_session_factory
from models import db_models  # registers the tables on Base.metadata
from routers import chat
from settings import settings

logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(database_url: Optional[str] = None) -> FastAPI:
    app = FastAPI(title="TechGear Support Backend")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[chat.SESSION_HEADER],
    )

    # One engine per process, handed to request handlers through app.state
    engine = build_engine(database_url or settings.get_database_url())
    Base.metadata.create_all(bind=engine)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.include_router(chat.router)

    @app.exception_handler(RequestValidationError)
    async def invalid_body_handler(request: Request, exc: RequestValidationError):
        logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
        if request.method == "GET":
            return JSONResponse({"error": "Invalid request"}, status_code=400)
        return PlainTextResponse("Invalid request body", status_code=400)

    @app.get("/")
    def read_root():
        return {"status": "TechGear support backend is running"}

    return app


app = create_app()
