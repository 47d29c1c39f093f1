import os

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


# --- Language model ---
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai").lower()
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL")
LLM_TEMPERATURE = _float_env("LLM_TEMPERATURE", 0.8)
LLM_TIMEOUT_SECONDS = _float_env("LLM_TIMEOUT_SECONDS", 120.0)

# --- Subtitle extraction service ---
SUBTITLES_API_URL = os.getenv("SUBTITLES_API_URL", "")
SUBTITLES_API_KEY = os.getenv("SUBTITLES_API_KEY")
SUBTITLES_API_HOST = os.getenv("SUBTITLES_API_HOST")
SUBTITLES_TIMEOUT_SECONDS = _float_env("SUBTITLES_TIMEOUT_SECONDS", 30.0)

# Only two tiers are consulted: primary, then fallback.
PRIMARY_LANGUAGE = os.getenv("PRIMARY_LANGUAGE") or "russian"
FALLBACK_LANGUAGE = os.getenv("FALLBACK_LANGUAGE") or "english"

# --- Pipeline ---
CHUNK_MAX_CHARS = _int_env("CHUNK_MAX_CHARS", 8000)
MAP_MAX_CONCURRENCY = _int_env("MAP_MAX_CONCURRENCY", 4)

RESULT_CACHE_MAX_SIZE = _int_env("RESULT_CACHE_MAX_SIZE", 256)
RESULT_CACHE_TTL_SECONDS = _int_env("RESULT_CACHE_TTL_SECONDS", 60 * 60 * 24)  # a day

# --- YouTube Data API ---
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")
YOUTUBE_TIMEOUT_SECONDS = _float_env("YOUTUBE_TIMEOUT_SECONDS", 30.0)

# --- Server ---
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
PORT = _int_env("PORT", 3000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
