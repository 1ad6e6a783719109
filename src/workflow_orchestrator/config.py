# config.py
# Runtime configuration. Values come from the environment (or a .env file)
# and fall back to the defaults below.

import os

from dotenv import load_dotenv

load_dotenv()


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw else default


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
AGENT_BASE_URL = os.getenv("AGENT_BASE_URL", "https://openrouter.ai/api/v1")
AGENT_MODEL = os.getenv("AGENT_MODEL", "anthropic/claude-3.5-haiku")

# Call → reply round trips allowed per user utterance.
MAX_TOOL_ROUNDS = _int("MAX_TOOL_ROUNDS", 3)

# Seconds.
STEP_TIMEOUT = _float("STEP_TIMEOUT", 10.0)
MOCK_DELAY = _float("MOCK_DELAY", 0.15)
