import logging
import os
from pathlib import Path

# Load .env early so os.getenv picks up local dev secrets.
try:  # pragma: no cover - environment bootstrap
    from dotenv import load_dotenv

    _DOTENV_PATHS = [Path.cwd() / ".env", Path(__file__).resolve().parent / ".env"]
    for _env_path in _DOTENV_PATHS:
        if _env_path.exists():
            load_dotenv(dotenv_path=_env_path, override=False)
except Exception as exc:
    logging.getLogger(__name__).warning("Failed to load .env: %s", exc)

APP_NAME = os.getenv("APP_NAME", "FBAInventoryDashboard")
APP_VERSION = "1.0.0"

# ----------------------------
# Helpers
# ----------------------------
def _csv_list(name: str, default: str = "") -> list[str]:
    raw = (os.getenv(name) or default).strip()
    if not raw:
        return []
    return [x.strip().upper() for x in raw.split(",") if x.strip()]


def _flag(name: str, default: bool = True) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("false", "0", "no", "off")


# ----------------------------
# Credentials (env only, optional per region)
# ----------------------------
LWA_CLIENT_ID = os.getenv("LWA_CLIENT_ID", "")
LWA_CLIENT_SECRET = os.getenv("LWA_CLIENT_SECRET", "")
REFRESH_TOKEN_NA = os.getenv("REFRESH_TOKEN_NA", "")
REFRESH_TOKEN_EU = os.getenv("REFRESH_TOKEN_EU", "")
REFRESH_TOKEN_AU = os.getenv("REFRESH_TOKEN_AU", "")

# ----------------------------
# SP-API endpoints
# ----------------------------
LWA_TOKEN_URL = "https://api.amazon.com/auth/o2/token"
REGION_ENDPOINTS = {
    "NA": "https://sellingpartnerapi-na.amazon.com",
    "EU": "https://sellingpartnerapi-eu.amazon.com",
    "FE": "https://sellingpartnerapi-fe.amazon.com",
}

# Store code -> (api region, marketplace id, refresh token, display name, currency)
STORE_DEFINITIONS = {
    "US": ("NA", "ATVPDKIKX0DER", REFRESH_TOKEN_NA, "United States", "USD"),
    "CA": ("NA", "A2EUQ1WTGCTBG2", REFRESH_TOKEN_NA, "Canada", "CAD"),
    "UK": ("EU", "A1F83G8C2ARO7P", REFRESH_TOKEN_EU, "United Kingdom", "GBP"),
    "AU": ("FE", "A39IBJ37TRP1C6", REFRESH_TOKEN_AU, "Australia", "AUD"),
}

# Stores whose planning report is refreshed in the background.
REPORT_STORES = _csv_list("REPORT_STORES", "US")

# ----------------------------
# Server
# ----------------------------
PORT = int(os.getenv("PORT", "4242"))
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:5173")
LOG_LEVEL = os.getenv("SPAPI_LOG_LEVEL", "INFO").upper()

# ----------------------------
# Planning report pipeline
# ----------------------------
PLANNING_REPORT_TYPE = "GET_FBA_INVENTORY_PLANNING_DATA"
PLANNING_CACHE_TTL_SECONDS = 6 * 60 * 60
SHIPMENTS_CACHE_TTL_SECONDS = 5 * 60
TOKEN_EXPIRY_MARGIN_SECONDS = 60
REPORT_COOLDOWN_SECONDS = 15 * 60
REPORT_REUSE_LOOKBACK_HOURS = 24
REPORT_POLL_ATTEMPTS = 12
REPORT_POLL_INTERVAL_SECONDS = 10
SHIPMENTS_LOOKBACK_DAYS = 30

# ----------------------------
# Background refresh
# ----------------------------
REPORT_AUTO_REFRESH = _flag("REPORT_AUTO_REFRESH", True)
REFRESH_INITIAL_DELAY_SECONDS = 5
REFRESH_SWEEP_INTERVAL_SECONDS = 15 * 60
REFRESH_INTER_REGION_DELAY_SECONDS = 15
BACKGROUND_MAX_WORKERS = 4
