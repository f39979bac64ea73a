import os


class Settings:
    # Default LLM endpoint — OpenRouter's public API
    DEFAULT_LLM_BASE_URL = "https://openrouter.ai/api/v1"
    DEFAULT_LLM_MODEL = "x-ai/grok-4.1-fast"

    def __init__(self):
        self._llm_base_url = os.environ.get("LLM_BASE_URL", self.DEFAULT_LLM_BASE_URL).rstrip("/")
        self._llm_model = os.environ.get("LLM_MODEL", self.DEFAULT_LLM_MODEL)
        self._llm_timeout = float(os.environ.get("LLM_TIMEOUT", "60"))
        self._api_url = os.environ.get("SUPPORT_API_URL", "http://localhost:8000").rstrip("/")

    def get_database_url(self) -> str:
        """Returns the SQLAlchemy URL, falling back to a SQLite file under data/."""
        url = os.environ.get("DATABASE_URL")
        if url:
            return url
        db_path = os.environ.get(
            "DATABASE_PATH",
            os.path.abspath(os.path.join(os.path.dirname(__file__), "../data/chat_history.db")),
        )
        return f"sqlite:///{db_path}"

    def get_llm_base_url(self) -> str:
        """Returns the base URL for the LLM API (e.g. 'https://openrouter.ai/api/v1')."""
        return self._llm_base_url

    def get_llm_model(self) -> str:
        return self._llm_model

    def get_llm_timeout(self) -> float:
        return self._llm_timeout

    def get_api_key(self) -> str:
        """Returns the OpenRouter key from the environment or the api_key.txt file."""
        key = os.environ.get("OPEN_ROUTER_API_KEY", "").strip()
        if key:
            return key
        key_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "../api_key.txt"))
        if os.path.exists(key_path):
            with open(key_path, "r") as f:
                return f.read().strip()
        return ""

    def get_api_url(self) -> str:
        """Returns the backend URL the widget talks to."""
        return self._api_url


settings = Settings()
