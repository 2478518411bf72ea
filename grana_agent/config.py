import os
from dotenv import load_dotenv

env_path = os.path.join(os.path.dirname(__file__), ".env")
load_dotenv(env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

# Language-understanding service (Bedrock Converse)
AWS_REGION = os.getenv("AWS_REGION", "us-west-2")
BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "")
BEDROCK_CONNECT_TIMEOUT = _env_int("BEDROCK_CONNECT_TIMEOUT", 10)
BEDROCK_READ_TIMEOUT = _env_int("BEDROCK_READ_TIMEOUT", 60)
BEDROCK_MAX_TOKENS = _env_int("BEDROCK_MAX_TOKENS", 2000)
BEDROCK_TEMPERATURE = _env_float("BEDROCK_TEMPERATURE", 0.1)

# Data store (Supabase PostgREST)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")
STORE_TIMEOUT_SECONDS = _env_int("STORE_TIMEOUT_SECONDS", 15)
USE_LOCAL_STORE = _env_bool("USE_LOCAL_STORE", False)

# Router
ROUTER_MODE = os.getenv("ROUTER_MODE", "rules_first").strip().lower()
if ROUTER_MODE not in {"rules_first", "model_first"}:
    ROUTER_MODE = "rules_first"
ROUTER_POLICY_VERSION = os.getenv("ROUTER_POLICY_VERSION", "v1")

# Turn context
HISTORY_MAX_TURNS = max(1, _env_int("HISTORY_MAX_TURNS", 10))
RECENT_TRANSACTIONS_LIMIT = max(1, _env_int("RECENT_TRANSACTIONS_LIMIT", 20))
CONTEXT_LOAD_WORKERS = max(1, _env_int("CONTEXT_LOAD_WORKERS", 5))
CONTEXT_LOAD_TIMEOUT_SECONDS = _env_int("CONTEXT_LOAD_TIMEOUT_SECONDS", 30)

# HTTP surface
DEV_BYPASS_AUTH = _env_bool("DEV_BYPASS_AUTH", False)
DEV_USER_ID = os.getenv("DEV_USER_ID", "demo-user")
