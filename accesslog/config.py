from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings
from typing import Any


class Settings(BaseSettings):
    service_name: str = "accesslog"

    log_level: str = "INFO"
    log_json: bool = True

    # do not log 200-299 requests
    skip2xx: bool = False

    request_id_header: str = "X-Request-Id"

    class Config:
        env_file = ".env"


class LoggerConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, arbitrary_types_allowed=True)

    log: Any
    # do not log 200-299 requests
    skip_2xx: bool = Field(default=False, alias="SKIP2XX")
    request_id_header: str = "X-Request-Id"

    @field_validator("log")
    @classmethod
    def log_required(cls, value):
        if value is None:
            raise ValueError("a logger is required")
        return value

    @classmethod
    def from_settings(cls, log, settings: Settings) -> "LoggerConfig":
        return cls(
            log=log,
            skip_2xx=settings.skip2xx,
            request_id_header=settings.request_id_header,
        )


settings = Settings()
