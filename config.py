import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    return os.environ.get(name, str(default)).lower() in ('1', 'true', 'yes')


class Config:
    """Settings read from the environment (and a local .env file)"""

    SECRET_KEY = os.environ.get("SESSION_SECRET", "dev-secret-key-change-in-production")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///recruitment.db")
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }
    ALLOWED_ORIGINS = os.environ.get("ALLOWED_ORIGINS", "*")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Completion service
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
    OPENAI_TEMPERATURE = float(os.environ.get("OPENAI_TEMPERATURE", "0.1"))
    EXTRACTION_MAX_TOKENS = int(os.environ.get("EXTRACTION_MAX_TOKENS", "1000"))
    SCORING_MAX_TOKENS = int(os.environ.get("SCORING_MAX_TOKENS", "800"))

    # Matching
    MATCH_REQUEST_DELAY = float(os.environ.get("MATCH_REQUEST_DELAY", "0.1"))  # seconds between scoring calls
    MATCH_WORKER_INTERVAL = int(os.environ.get("MATCH_WORKER_INTERVAL", "10"))
    MATCH_WORKER_BATCH = int(os.environ.get("MATCH_WORKER_BATCH", "5"))
    MATCH_MAX_ATTEMPTS = int(os.environ.get("MATCH_MAX_ATTEMPTS", "3"))
    START_MATCH_WORKER = _env_bool("START_MATCH_WORKER", True)
