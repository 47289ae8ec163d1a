from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.analysis.criteria import InvalidSearchCriteria
from backend.api.routes import router
from backend.connectors.http import build_retrying_session
from backend.logging_config import configure_logging
from backend.reference.store import load_reference_store
from backend.runtime import ensure_runtime_directories
from backend.settings import load_settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv()
    settings = load_settings()
    configure_logging(settings.log_level)
    ensure_runtime_directories()
    app.state.settings = settings
    app.state.store = load_reference_store(settings.reference_dir)
    app.state.http_session = build_retrying_session(settings.http_user_agent)
    try:
        yield
    finally:
        app.state.http_session.close()


app = FastAPI(title="AgencyScope API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(InvalidSearchCriteria)
async def invalid_criteria_handler(request: Request, exc: InvalidSearchCriteria):
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.get("/health", tags=["system"])
def health(request: Request):
    store = request.app.state.store
    return {"status": "ok", "reference_sha256": store.digest}


app.include_router(router)
