import os

class Config:
    """Centralized configuration management"""
    DD_SITE = os.getenv("DD_SITE", "datadoghq.com")
    DD_CLIENT_API_KEY = os.getenv("DD_CLIENT_API_KEY", "")
    DD_CLIENT_APP_KEY = os.getenv("DD_CLIENT_APP_KEY", "")
    CACHE_DIR = os.getenv("CACHE_DIR", "./cache")  # On-disk query cache
    CACHE_TTL = float(os.getenv("CACHE_TTL", "3600"))  # seconds = 1 hour
    MODE = os.getenv("MODE", "fast")  # "fast" or "accurate"
    LOOPBACK = float(os.getenv("LOOPBACK", "3600"))  # seconds = 1 hour
    PAGE_LIMIT = int(os.getenv("PAGE_LIMIT", "1000"))  # spans per search page
    MAX_TRACES = int(os.getenv("MAX_TRACES", "0"))  # 0 = no limit
    MAX_PAGES = int(os.getenv("MAX_PAGES", "1000"))  # hard cap on search pages
    MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))  # parallel chunk queries
    RATE_LIMIT_COOLDOWN = float(os.getenv("RATE_LIMIT_COOLDOWN", "3"))  # seconds
    ENABLE_RETRY = os.getenv("ENABLE_RETRY", "true").lower() == "true"
    MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))  # seconds

    @property
    def api_endpoint(self):
        return f"https://api.{self.DD_SITE}"
