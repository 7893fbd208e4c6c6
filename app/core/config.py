from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str = "postgresql://nutrition_user:nutrition_password@db:5432/nutrition_db"
    # При продакшн/обычной разработке лучше не пересоздавать БД на каждом старте
    RESET_DATABASE: bool = False
    SQL_ECHO: bool = False

    REDIS_URL: str = "redis://redis:6379/0"

    # Токены выпускает внешний провайдер авторизации, мы только проверяем подпись
    SECRET_KEY: str = "SECRET_KEY_FOR_NUTRITION"
    ALGORITHM: str = "HS256"

    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://api.groq.com/openai/v1/chat/completions"
    LLM_MODEL: str = "llama-3.3-70b-versatile"
    LLM_VISION_MODEL: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    LLM_TIMEOUT: float = 30.0
    LLM_TEMPERATURE: float = 0.3
    LLM_MAX_TOKENS: int = 1500

    ANALYSIS_CACHE_TTL: int = 3600
    ANALYSIS_CACHE_PREFIX_LENGTH: int = 100
    PROGRESS_CACHE_TTL: int = 24 * 60 * 60

    NOTIFICATION_RATE_LIMIT_MAX: int = 10
    NOTIFICATION_RATE_LIMIT_WINDOW: int = 60 * 60

    DEFAULT_TIMEZONE: str = "UTC"
    TIMEZONE_CACHE_TTL: int = 7 * 24 * 60 * 60

    # Одна установка приложения = один пользователь: перепланирование снимает все напоминания
    SINGLE_USER_INSTALLATION: bool = True

    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    HANDLED_NOTIFICATION_TTL: int = 24 * 60 * 60

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "allow"

settings = Settings()
