from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader
from loguru import logger

from app.api.main import api_router
from app.core.exceptions import RecommendationError
from app.services.jikan.service import get_jikan_service
from app.services.request_queue import get_request_queue

from .config import settings
from .version import __version__


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events (startup/shutdown).
    """
    yield
    # Only tear down what was actually created during this process
    if get_request_queue.cache_info().currsize:
        await get_request_queue().close()
        logger.info("Request queue closed")
    if get_jikan_service.cache_info().currsize:
        try:
            await get_jikan_service().close()
            logger.info("Jikan HTTP client closed")
        except Exception as exc:
            logger.warning(f"Failed to close Jikan HTTP client: {exc}")


app = FastAPI(
    title=settings.APP_NAME,
    description="Manga, manhwa and anime recommendations from MyAnimeList",
    version=__version__,
    lifespan=lifespan,
    docs_url=None if settings.APP_ENV != "development" else "/docs",
    redoc_url=None if settings.APP_ENV != "development" else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RecommendationError)
async def recommendation_error_handler(request: Request, exc: RecommendationError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} raised an unhandled error: {exc}")
    return JSONResponse(status_code=500, content={"error": "Failed to get recommendations", "details": str(exc)})


# Serve static files
# app/core/app.py -> app/core -> app -> root
project_root = Path(__file__).resolve().parent.parent.parent
static_dir = project_root / "app/static"
templates_dir = project_root / "app/templates"

if static_dir.exists():
    app.mount("/app/static", StaticFiles(directory=str(static_dir)), name="static")

# Initialize Jinja2 templates
jinja_env = Environment(loader=FileSystemLoader(str(templates_dir)))


@app.get("/", response_class=HTMLResponse)
async def index_page(request: Request):
    template = jinja_env.get_template("index.html")
    html_content = template.render(
        request=request,
        app_name=settings.APP_NAME,
        app_version=__version__,
        ai_enabled=bool(settings.GEMINI_API_KEY),
    )
    return HTMLResponse(content=html_content, media_type="text/html")


app.include_router(api_router)
