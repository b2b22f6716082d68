from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Optional
import logging
import os
from dotenv import load_dotenv
from contextlib import asynccontextmanager
from sportrays import __version__
from sportrays.admin import ADMIN_PAGE_PATH, ADMIN_SECRET_HEADER, check_admin_secret
from sportrays.config import Settings, get_settings
from sportrays.errors import ConfigurationMissing, SportRaysError
from sportrays.logging_config import setup_logging
from sportrays.models import (
    ActivePollView, ChannelList, CreatePollRequest, CreatePollResult, NewsFeed,
    OkResult, PollList, ScoreBoard, VideoFeed, VoteRequest, VoteResult,
)
from sportrays.polls import PollEngine
from sportrays.services import Services, build_services

if os.path.exists('.dev.env'):
    load_dotenv('.dev.env')

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

GENERIC_ERROR = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler - runs on startup and shutdown."""
    # Startup: build caches, clients and poll storage
    services = build_services(app.state.settings)
    await services.startup()
    app.state.services = services
    logger.info("Sport Rays backend started")

    yield

    # Shutdown: close upstream client and database engine
    await services.aclose()


app = FastAPI(
    title="Sport Rays API",
    description="Cached aggregation of sports videos, news and scores, plus polls",
    version=__version__,
    lifespan=lifespan
)
app.state.settings = settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_poll_engine(services: Services = Depends(get_services)) -> PollEngine:
    """
    Poll engine, failing when poll storage is not configured.

    Raises:
        ConfigurationMissing: If DATABASE_URL is unset
    """
    if services.polls is None:
        raise ConfigurationMissing("Polls not configured")
    return services.polls


def require_admin(
    request: Request,
    secret: Optional[str] = Query(None, description="Admin secret"),
    app_settings: Settings = Depends(get_app_settings),
):
    """Dependency gating admin routes on the shared secret (header or query)."""
    provided = request.headers.get(ADMIN_SECRET_HEADER) or secret
    check_admin_secret(app_settings.admin_secret, provided)


def _error_response(request: Request, status_code: int, message: str) -> JSONResponse:
    if status_code >= 500 and request.app.state.settings.hardened:
        message = GENERIC_ERROR
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(SportRaysError)
async def sportrays_error_handler(request: Request, exc: SportRaysError):
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.__class__.__name__, request.url.path, exc.message)
    return _error_response(request, exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return _error_response(request, 400, message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(request, 500, f"{exc.__class__.__name__}: {exc}")


@app.get("/")
def read_root():
    return {
        "name": "Sport Rays API",
        "version": __version__,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "videos": "/videos?handle=@premierleague (optional)",
            "channels": "/channels",
            "news": "/news",
            "scores": "/scores?scope=live|today|upcoming",
            "polls": {
                "active": "/polls/active",
                "vote": "POST /polls/{id}/vote",
                "results": "/polls/{id}/results",
            },
            "admin": "/admin (requires secret)",
        }
    }


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.get("/videos", response_model=VideoFeed)
async def get_videos(
    handle: Optional[str] = Query(None, description="Channel handle, e.g. @premierleague"),
    services: Services = Depends(get_services),
) -> VideoFeed:
    """
    Get recent videos of one channel, or the merged feed of all channels.

    Raises:
        ConfigurationMissing: If YOUTUBE_API_KEY is unset
        NotFound: If the handle cannot be resolved
    """
    if not services.youtube.configured:
        raise ConfigurationMissing("Server missing YOUTUBE_API_KEY")
    return await services.videos.get_videos(handle.strip() if handle else None)


@app.get("/channels", response_model=ChannelList)
async def get_channels(services: Services = Depends(get_services)) -> ChannelList:
    """List the aggregated channels with title and avatar."""
    if not services.youtube.configured:
        raise ConfigurationMissing("Server missing YOUTUBE_API_KEY")
    return await services.videos.get_channels()


@app.get("/news", response_model=NewsFeed)
async def get_news(services: Services = Depends(get_services)) -> NewsFeed:
    return await services.news.get_news()


@app.get("/scores", response_model=ScoreBoard)
async def get_scores(
    scope: str = Query("live", description="live, today or upcoming"),
    services: Services = Depends(get_services),
) -> ScoreBoard:
    """
    Get matches for a scope.

    Provider outages yield an empty list, never an error.
    """
    return await services.scores.get_scores(scope)


@app.get("/polls/active", response_model=Optional[ActivePollView])
async def get_active_poll(
    device: Optional[str] = Query(None, description="Device hash of the client"),
    services: Services = Depends(get_services),
) -> Optional[ActivePollView]:
    """
    Get the running poll with vote counts, or null when none is running
    (or polls are not configured).
    """
    if services.polls is None:
        return None
    return await services.polls.get_active_poll(device or None)


@app.post("/polls/{poll_id}/vote", response_model=VoteResult)
async def vote(
    poll_id: str,
    body: VoteRequest,
    polls: PollEngine = Depends(get_poll_engine),
) -> VoteResult:
    """
    Cast a vote. Repeating a vote from the same device changes nothing and
    still returns the totals.
    """
    return await polls.cast_vote(poll_id, body.option_id, body.device_id_hash)


@app.get("/polls/{poll_id}/results", response_model=VoteResult)
async def get_results(poll_id: str, polls: PollEngine = Depends(get_poll_engine)) -> VoteResult:
    return VoteResult(ok=True, totals=await polls.totals(poll_id))


@app.get("/admin", dependencies=[Depends(require_admin)])
async def admin_page():
    if not ADMIN_PAGE_PATH.exists():
        raise HTTPException(404, "Admin page is missing")
    return FileResponse(ADMIN_PAGE_PATH, media_type="text/html")


@app.get("/admin/polls", response_model=PollList, dependencies=[Depends(require_admin)])
async def admin_list_polls(polls: PollEngine = Depends(get_poll_engine)) -> PollList:
    return PollList(items=await polls.list_polls())


@app.post("/admin/polls", response_model=CreatePollResult, dependencies=[Depends(require_admin)])
async def admin_create_poll(
    body: CreatePollRequest,
    polls: PollEngine = Depends(get_poll_engine),
) -> CreatePollResult:
    poll_id = await polls.create_poll(
        body.question, body.options, body.starts_at, body.ends_at, body.is_active,
    )
    return CreatePollResult(ok=True, poll_id=poll_id)


@app.post("/admin/polls/{poll_id}/activate", response_model=OkResult, dependencies=[Depends(require_admin)])
async def admin_activate_poll(poll_id: str, polls: PollEngine = Depends(get_poll_engine)) -> OkResult:
    await polls.set_active(poll_id, True)
    return OkResult()


@app.post("/admin/polls/{poll_id}/deactivate", response_model=OkResult, dependencies=[Depends(require_admin)])
async def admin_deactivate_poll(poll_id: str, polls: PollEngine = Depends(get_poll_engine)) -> OkResult:
    await polls.set_active(poll_id, False)
    return OkResult()
