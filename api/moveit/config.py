import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./moveit.db")
SECRET_KEY = os.getenv("SECRET_KEY", "devsecret")
ADMIN_ACCESS_TOKEN = os.getenv("ADMIN_ACCESS_TOKEN")
SHARE_TTL_DAYS = int(os.getenv("SHARE_TTL_DAYS", "30"))
WEB_BASE_URL = os.getenv("WEB_BASE_URL", "http://localhost:3000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
