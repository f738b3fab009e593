import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from routes import register_inventory_routes
from services.inventory_runtime import get_runtime

# --- Logging configuration ---
LOG_DIR = Path(__file__).parent / "logs"
LOG_DIR.mkdir(exist_ok=True)

LOG_FILE_PATH = LOG_DIR / "inventory_sync.log"

root_logger = logging.getLogger()
logger = logging.getLogger("inventory_sync")
if not root_logger.handlers:
    root_logger.setLevel(config.LOG_LEVEL)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(
        LOG_FILE_PATH,
        maxBytes=5_000_000,  # 5 MB
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

logging.getLogger("uvicorn").propagate = True
logging.getLogger("uvicorn.error").propagate = True
logging.getLogger("uvicorn.access").propagate = True
# --- End logging configuration ---

app = FastAPI(title="FBA Inventory Sync", version=config.APP_VERSION)

register_inventory_routes(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup_event():
    """Build the shared caches and start the planning report scheduler."""
    try:
        runtime = get_runtime()
        runtime.start()
        logger.info(
            "[Startup] Inventory sync ready; planning stores=%s",
            ",".join(runtime.report_store_codes) or "-",
        )
    except Exception as e:
        logger.warning(f"[Startup] Failed to initialize background tasks: {e}")


@app.on_event("shutdown")
def shutdown_event():
    """Signal background workers to stop."""
    try:
        get_runtime().shutdown()
    except Exception as exc:
        logger.warning(f"[Shutdown] Failed to stop background workers cleanly: {exc}")


@app.get("/api/health")
def health():
    return {"ok": True, "app": config.APP_NAME, "version": config.APP_VERSION}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
