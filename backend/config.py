from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # CORS origins — set ALLOWED_ORIGINS env var for production (JSON list)
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]
    # Extra production origin; appended to allowed_origins
    extra_origin: str = ""
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001

    # Chat bodies longer than this are rejected as VALIDATION_ERROR
    max_message_length: int = 2000
    # Default page size for GET /api/rooms/{id}/messages
    message_history_limit: int = 100
    # Outbound frames buffered per connection before it is dropped as too slow
    send_queue_limit: int = 1000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    @property
    def cors_origins(self) -> List[str]:
        if self.extra_origin and self.extra_origin not in self.allowed_origins:
            return self.allowed_origins + [self.extra_origin]
        return self.allowed_origins


settings = Settings()
