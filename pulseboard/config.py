from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    telegram_bot_token: str
    allowed_chat_ids: list[int] = []

    @field_validator("allowed_chat_ids", mode="before")
    @classmethod
    def parse_chat_ids(cls, v):
        if isinstance(v, str):
            return [int(x.strip()) for x in v.split(",") if x.strip()]
        if isinstance(v, int):
            return [v]
        return v

    db_path: str = "pulseboard.db"
    default_currency: str = "USD"
    projection_months: int = 6
    renewal_window_days: int = 30
    reminder_check_minutes: int = 60
    reminder_key_prefix: str = "pulseboard-reminder"
    debug: bool = False
    health_check_port: int = 8080


settings = Settings()
