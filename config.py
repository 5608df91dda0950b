# config.py
import json
import os

# --- Provider HTTP ---
CRAWLER_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
}

# --- HTTP Client Defaults ---
CRAWLER_HTTP_TOTAL_TIMEOUT_SECONDS = int(os.getenv('CRAWLER_HTTP_TOTAL_TIMEOUT_SECONDS', 60))
CRAWLER_HTTP_CONNECT_TIMEOUT_SECONDS = int(os.getenv('CRAWLER_HTTP_CONNECT_TIMEOUT_SECONDS', 15))
CRAWLER_HTTP_SOCK_READ_TIMEOUT_SECONDS = int(os.getenv('CRAWLER_HTTP_SOCK_READ_TIMEOUT_SECONDS', 45))
CRAWLER_HTTP_CONCURRENCY_LIMIT = int(os.getenv('CRAWLER_HTTP_CONCURRENCY_LIMIT', 50))

# Outbound proxy for every provider request. Unset means direct connections.
HTTPS_PROXY = (os.getenv('HTTPS_PROXY') or '').strip() or None

# --- Novel API ---
def _positive_int(name, default):
    value = int(os.getenv(name, default))
    if value < 1:
        raise ValueError(f'{name} must be >= 1, got {value}')
    return value


NOVEL_LIST_PAGE_SIZE = _positive_int('NOVEL_LIST_PAGE_SIZE', 10)
NOVEL_RANK_CACHE_MAX_AGE_SECONDS = int(os.getenv('NOVEL_RANK_CACHE_MAX_AGE_SECONDS', 3600 * 2))

# --- Providers ---
SYOSETU_BASE_URL = "https://ncode.syosetu.com"
SYOSETU_API_URL = "https://api.syosetu.com/novelapi/api/"
KAKUYOMU_BASE_URL = "https://kakuyomu.jp"
HAMELN_BASE_URL = "https://syosetu.org"

# --- Database ---
DATABASE_URL = (os.getenv('DATABASE_URL') or '').strip() or None
DB_NAME = os.getenv('DB_NAME')
DB_USER = os.getenv('DB_USER')
DB_PASSWORD = os.getenv('DB_PASSWORD')
DB_HOST = os.getenv('DB_HOST', 'localhost')
DB_PORT = os.getenv('DB_PORT', '5432')
DB_APPLICATION_NAME = os.getenv('DB_APPLICATION_NAME', 'novel_aggregator')
DB_TIMEZONE = os.getenv('DB_TIMEZONE', 'UTC')


# --- CORS ---
def _parse_origins(raw):
    if raw is None:
        return None
    stripped = raw.strip()
    if not stripped:
        return None
    if stripped.startswith('['):
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            origins = [str(item).strip() for item in parsed if str(item).strip()]
            return origins or None
    origins = [part.strip() for part in stripped.split(',') if part.strip()]
    return origins or None


def _parse_flag(raw):
    return (raw or '').strip().lower() in {'1', 'true', 'yes', 'on'}


CORS_ALLOW_ORIGINS = _parse_origins(os.getenv('CORS_ALLOW_ORIGINS'))
CORS_SUPPORTS_CREDENTIALS = _parse_flag(os.getenv('CORS_SUPPORTS_CREDENTIALS'))
