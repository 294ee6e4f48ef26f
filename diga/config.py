import os

def _read_env_file(path):
    """KEY=VALUE pairs from a .env file; comments, blanks and malformed lines are skipped."""
    values = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            s = line.strip()
            if s.startswith("export "):
                s = s[len("export "):].lstrip()
            key, sep, value = s.partition("=")
            key = key.strip()
            if not sep or not key or key.startswith("#"):
                continue
            values[key] = value.strip().strip('"').strip("'")
    return values

def _load_dotenv(paths=None):
    """Fill unset or empty variables from .env in the working directory, then beside the package."""
    if paths is None:
        paths = [
            os.path.join(os.getcwd(), ".env"),
            os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env"),
        ]
    for path in paths:
        if not os.path.isfile(path):
            continue
        for key, value in _read_env_file(path).items():
            if not os.environ.get(key):
                os.environ[key] = value

def _int_env(name, default):
    raw = os.getenv(name)
    try:
        return int(raw) if raw not in (None, "") else default
    except ValueError:
        return default

def _float_env(name, default):
    raw = os.getenv(name)
    try:
        return float(raw) if raw not in (None, "") else default
    except ValueError:
        return default

_load_dotenv()

API_HOST = os.getenv("API_HOST") or os.getenv("HOST") or "0.0.0.0"
API_PORT = _int_env("API_PORT", _int_env("PORT", 5000))
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL") or "gemini-2.5-flash"
GEMINI_IMAGE_MODEL = os.getenv("GEMINI_IMAGE_MODEL") or "gemini-2.5-flash-image"
GEMINI_COOLDOWN_SECONDS = _int_env("GEMINI_COOLDOWN_SECONDS", 900)

# Remote intent call: hard timeout, one retry on rate limit, 2s base backoff.
REMOTE_TIMEOUT_SECONDS = _float_env("REMOTE_TIMEOUT_SECONDS", 8.0)
REMOTE_MAX_RETRIES = _int_env("REMOTE_MAX_RETRIES", 1)
REMOTE_BACKOFF_SECONDS = _float_env("REMOTE_BACKOFF_SECONDS", 2.0)
HISTORY_TURNS = _int_env("HISTORY_TURNS", 6)

FIREBASE_CREDENTIALS = os.getenv("FIREBASE_CREDENTIALS") or os.getenv("FIREBASE_CREDENTIALS_JSON")
STORE_BACKEND = (os.getenv("STORE_BACKEND") or "firestore").strip().lower()
