from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ═══════════════════════════════════════════════════
    # FastAPI Application Settings
    # ═══════════════════════════════════════════════════
    APP_NAME: str = "Site Race"
    VERSION: str = "0.1.0"
    ENV: str = "development"  # "development" | "production"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ═══════════════════════════════════════════════════
    # Server Configuration
    # ═══════════════════════════════════════════════════
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ═══════════════════════════════════════════════════
    # Room Storage
    # ═══════════════════════════════════════════════════
    REDIS_URL: str = "redis://localhost:6379"
    USE_IN_MEMORY_DB: bool = True  # False → Redis, with in-memory fallback
    ROOM_KEY_PREFIX: str = "room:"

    # ═══════════════════════════════════════════════════
    # Room Lifecycle
    # ═══════════════════════════════════════════════════
    ROOM_IDLE_TTL_MINUTES: int = 120
    ROOM_SWEEP_INTERVAL_SECONDS: int = 300  # 0 disables the sweep task

    # ═══════════════════════════════════════════════════
    # CORS Configuration
    # ═══════════════════════════════════════════════════
    CORS_ORIGINS: list[str] = ["*"]
    CORS_CREDENTIALS: bool = True
    CORS_METHODS: list[str] = ["*"]
    CORS_HEADERS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        env_prefix = "SITESIM_"
        extra = "ignore"


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Cached Settings instance.

    Usable as a FastAPI dependency:

    @app.get("/info")
    def info(settings: Settings = Depends(get_settings)):
        return {"env": settings.ENV}
    """
    global _settings
    if not _settings:
        _settings = Settings()
    return _settings
