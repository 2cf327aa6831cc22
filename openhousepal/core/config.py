import os

from dotenv import load_dotenv

load_dotenv()

BOT_TOKEN = os.getenv("BOT_TOKEN")

# Backend REST API (without trailing slash)
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/")

# Public web app, used to build share links and login redirects
PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "https://openhousepal.com").rstrip("/")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///openhousepal.db")

# Toasts disappear after this many seconds
NOTIFICATION_SECONDS = float(os.getenv("NOTIFICATION_SECONDS", "5"))

REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

# Auth token lifetime, same as the web cookie (24h)
TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "24"))
