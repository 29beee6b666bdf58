import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mpd_sleep import (
    Cancel, ChannelDisconnected, InboxSender, PlayerControl, PlayerError,
    SleepTimerCoordinator, StartTimer,
)
from mpd_sleep.logging_utils import setup_logging

from service_config import load_service_config

config = load_service_config()
setup_logging(log_level=config.timer.log_level, log_format=config.timer.log_format)

logger = logging.getLogger(__name__)

# Global variables
player: Optional[PlayerControl] = None
coordinator: Optional[SleepTimerCoordinator] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the sleep timer coordinator for the lifetime of the app."""
    global player, coordinator

    logger.info("Starting MPD sleep timer server")
    player = PlayerControl(config.timer.player)
    coordinator = SleepTimerCoordinator(player, config.timer.fade)
    coordinator.start()
    logger.info(f"Listening on {config.timer.server.listen_host}:{config.timer.server.listen_port}")

    yield

    coordinator.stop()
    logger.info("Sleep timer coordinator stopped")


app = FastAPI(
    title=config.app_title,
    lifespan=lifespan,
    docs_url="/docs" if config.enable_docs else None,
    redoc_url=None,
    openapi_url="/openapi.json" if config.enable_docs else None,
)


@app.exception_handler(StarletteHTTPException)
async def plain_text_errors(request: Request, exc: StarletteHTTPException):
    """Reply to errors in plain text like the rest of the API."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        return PlainTextResponse("Route not found\n", status_code=404)
    return PlainTextResponse(f"{exc.detail}\n", status_code=exc.status_code)


def get_sender() -> InboxSender:
    """Give each request its own handle on the coordinator inbox."""
    if coordinator is None or not coordinator.is_running:
        raise HTTPException(status_code=503, detail="Sleep timer is not running")
    return coordinator.sender()


def get_player() -> PlayerControl:
    if player is None:
        raise HTTPException(status_code=503, detail="Player is not configured")
    return player


def _send(sender: InboxSender, message) -> None:
    try:
        sender.send(message)
    except ChannelDisconnected:
        logger.error("Sleep timer inbox is closed, dropping request")
        raise HTTPException(status_code=503, detail="Sleep timer is not running")


@app.get("/sleep/start/{seconds}", response_class=PlainTextResponse)
async def sleep_start(seconds: str, sender: InboxSender = Depends(get_sender)):
    """Arm (or re-arm) the sleep timer."""
    # isdigit alone also accepts non-ASCII digits such as superscripts
    if not (seconds.isascii() and seconds.isdigit()):
        raise HTTPException(status_code=400, detail="Seconds missing")
    try:
        duration = int(seconds)
        message = StartTimer(duration)
    except ValueError:
        raise HTTPException(status_code=400, detail="Seconds missing")

    _send(sender, message)
    logger.info(f"Sleep timer requested for {duration}s")
    return f"Sleeping for {duration} seconds…\n"


@app.get("/sleep/cancel", response_class=PlainTextResponse)
async def sleep_cancel(sender: InboxSender = Depends(get_sender)):
    """Cancel a pending sleep timer."""
    _send(sender, Cancel())
    logger.info("Sleep timer cancel requested")
    return "Canceling sleep timer…\n"


@app.get("/sleep/status", response_class=PlainTextResponse)
def sleep_status(player: PlayerControl = Depends(get_player)):
    """Report the player status read fresh from MPD."""
    try:
        status = player.read_status()
    except PlayerError as e:
        logger.error(f"Error reading player status: {e}")
        raise HTTPException(status_code=502, detail=f"Error reading player status: {e}")

    lines = [f"{key}: {value}" for key, value in status.to_dict().items()]
    return "\n".join(lines) + "\n"


@app.get("/pause", response_class=PlainTextResponse)
def pause(player: PlayerControl = Depends(get_player)):
    """Toggle pause and report the resulting state."""
    try:
        state = player.toggle_pause()
    except PlayerError as e:
        logger.error(f"Error toggling pause: {e}")
        raise HTTPException(status_code=502, detail=f"Error toggling pause: {e}")

    return f"State is now {state.value}!\n"


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "coordinator": coordinator is not None and coordinator.is_running,
        "timestamp": datetime.now().isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting MPD sleep timer on {config.timer.server.listen_host}:{config.timer.server.listen_port}")
    uvicorn.run(
        app,
        host=config.timer.server.listen_host,
        port=config.timer.server.listen_port,
        log_level="warning",
        access_log=False
    )
