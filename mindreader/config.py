import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseModel):
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    log_level: str = os.getenv("LOG_LEVEL", "DEBUG").upper()

    llm_timeout_seconds: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "20"))
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    llm_retry_temperature: float = float(os.getenv("LLM_RETRY_TEMPERATURE", "0.8"))
    llm_max_output_tokens: int = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "64"))
    history_window: int = int(os.getenv("HISTORY_WINDOW", "10"))

    duplicate_retries: int = int(os.getenv("DUPLICATE_RETRIES", "3"))
    duplicate_similarity: float = float(os.getenv("DUPLICATE_SIMILARITY", "0.7"))

    guess_min_questions: int = int(os.getenv("GUESS_MIN_QUESTIONS", "15"))
    guess_max_questions: int = int(os.getenv("GUESS_MAX_QUESTIONS", "20"))
    guess_confidence_threshold: float = float(os.getenv("GUESS_CONFIDENCE_THRESHOLD", "0.5"))

    session_backend: str = os.getenv("SESSION_BACKEND", "memory").lower()
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
    max_sessions: int = int(os.getenv("MAX_SESSIONS", "1000"))

    learning_log_path: str = os.getenv("LEARNING_LOG_PATH", os.path.join("logs", "learning-data.jsonl"))

    wikipedia_summary_url: str = os.getenv("WIKIPEDIA_SUMMARY_URL", "https://en.wikipedia.org/api/rest_v1/page/summary/")
    enrichment_timeout_seconds: float = float(os.getenv("ENRICHMENT_TIMEOUT_SECONDS", "5"))
    http_user_agent: str = os.getenv("HTTP_USER_AGENT", "mindreader/0.1 (character guessing game)")

settings = Settings()
