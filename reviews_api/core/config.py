# reviews_api/core/config.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "movie_reviews_service"
    env: str = Field(default="local")
    host: str = "0.0.0.0"
    port: int = 8080

    # change streams need a replica set
    mongo_dsn: str = Field(
        default="mongodb://mongo:27017/movie_reviews?replicaSet=rs0",
        alias="MONGO_DSN"
    )
    mongo_db: str = "movie_reviews"
    mongo_ping_on_startup: bool = Field(default=True,
                                        alias="MONGO_PING_ON_STARTUP")

    sentry_dsn: str = Field(default="", alias="SENTRY_DSN")

    # re-read the feed for live subscribers right after our own writes
    refresh_after_write: bool = Field(default=True,
                                      alias="REFRESH_AFTER_WRITE")
    public_feed_limit: int = Field(default=100, alias="PUBLIC_FEED_LIMIT")

    model_config = SettingsConfigDict(env_file="infra/.env", extra="ignore")


settings = Settings()
