import os
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from typing import Optional
from collections import deque

from fastapi import FastAPI, Depends
from fastapi.responses import FileResponse, JSONResponse, Response

from roadtrip.auth import init_tables, require_admin
from roadtrip.demo_data import DEMO_MODE, seed_demo_route

# ─────────────────────────── VERSION ───────────────────────────
APP_VERSION = "0.3.0"
#
# Changelog:
# 0.3.0 - Check-ins and activity feed, trip stats endpoint
# 0.2.0 - Stop writes validated against the whole route before commit
# 0.1.0 - Initial release: route progress API

# ─────────────────────────── LOGGING SETUP ───────────────────────────
# Recent records are kept in memory and served by /api/logs
LOG_BUFFER_SIZE = 1000
log_buffer = deque(maxlen=LOG_BUFFER_SIZE)

class BufferHandler(logging.Handler):
    """Keeps formatted records in the in-memory ring buffer"""
    def emit(self, record):
        try:
            log_buffer.append({
                "time": datetime.fromtimestamp(record.created).isoformat(),
                "level": record.levelname,
                "levelno": record.levelno,
                "name": record.name,
                "message": record.getMessage(),
                "formatted": self.format(record),
            })
        except Exception:
            self.handleError(record)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "/data/roadtrip.log")
LOG_LEVEL_NO = getattr(logging, LOG_LEVEL, logging.INFO)

log_format = logging.Formatter(
    '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Root logger captures uvicorn and fastapi output too
root_logger = logging.getLogger()
root_logger.setLevel(LOG_LEVEL_NO)

logger = logging.getLogger("roadtrip")

for handler in (logging.StreamHandler(), BufferHandler()):
    handler.setFormatter(log_format)
    handler.setLevel(LOG_LEVEL_NO)
    root_logger.addHandler(handler)

# File handler (optional, only if writable)
try:
    os.makedirs(os.path.dirname(LOG_FILE), exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_FILE, maxBytes=10*1024*1024, backupCount=5  # 10MB per file, keep 5 backups
    )
    file_handler.setFormatter(log_format)
    file_handler.setLevel(LOG_LEVEL_NO)
    root_logger.addHandler(file_handler)
    logger.info(f"File logging enabled: {LOG_FILE}")
except OSError as e:
    logger.warning(f"Could not enable file logging: {e}")

logger.info(f"Logging initialized at level {LOG_LEVEL}")

# ─────────────────────────── APP ───────────────────────────

APP_TITLE = "Road Trip Tracker"

app = FastAPI(title=APP_TITLE, version=APP_VERSION)


@app.on_event("startup")
def _startup():
    init_tables()

    if DEMO_MODE:
        logger.info("[DEMO] Demo mode enabled - seeding default route...")
        seed_demo_route()


from roadtrip.route import router as route_router  # noqa: E402
app.include_router(route_router)


@app.get("/health")
def health():
    return {"status": "ok", "version": APP_VERSION, "demo_mode": DEMO_MODE}


@app.get("/api/logs")
def get_logs(
    level: Optional[str] = None,
    limit: int = 100,
    search: Optional[str] = None,
    name: Optional[str] = None,
    _=Depends(require_admin)
):
    """
    Recent log records, newest first (admin only).

    - level: minimum level (DEBUG, INFO, WARNING, ERROR)
    - name: logger name prefix, e.g. roadtrip.route
    - search: case-insensitive text in the message
    """
    min_level = logging.getLevelName(level.upper()) if level else logging.NOTSET
    if not isinstance(min_level, int):
        return JSONResponse({"error": f"Unknown log level: {level}"}, status_code=400)

    needle = search.lower() if search else None
    logs = [
        entry for entry in reversed(log_buffer)
        if entry["levelno"] >= min_level
        and (not name or entry["name"].startswith(name))
        and (not needle or needle in entry["message"].lower())
    ][:max(1, min(limit, LOG_BUFFER_SIZE))]

    return {
        "count": len(logs),
        "total_in_buffer": len(log_buffer),
        "logs": logs,
    }


@app.get("/api/logs/download")
def download_logs(_=Depends(require_admin)):
    """Download full log file (if available)"""
    if os.path.exists(LOG_FILE):
        return FileResponse(
            LOG_FILE,
            filename=f"roadtrip_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log",
            media_type="text/plain"
        )
    # No file handler: fall back to the in-memory buffer
    log_text = "\n".join(l["formatted"] for l in log_buffer)
    return Response(content=log_text, media_type="text/plain")
