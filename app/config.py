import os
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator
from sqlalchemy.engine import URL

DEFAULT_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")


class Settings(BaseModel):
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    db_host: Optional[str] = Field(default=None, alias="DB_HOST")
    db_port: int = Field(default=3306, alias="DB_PORT")
    db_user: Optional[str] = Field(default=None, alias="DB_USER")
    db_password: str = Field(default="", alias="DB_PASSWORD")
    db_name: Optional[str] = Field(default=None, alias="DB_NAME")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3000, alias="PORT")
    upload_dir: Path = Field(default=Path("uploads"), alias="UPLOAD_DIR")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, gt=0, alias="MAX_UPLOAD_BYTES")
    allowed_image_types: Tuple[str, ...] = DEFAULT_IMAGE_TYPES
    checkout_timeout: float = Field(default=5.0, gt=0, alias="CHECKOUT_TIMEOUT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _require_database(self) -> "Settings":
        if self.database_url:
            return self
        missing = [
            alias
            for alias, value in (("DB_HOST", self.db_host), ("DB_USER", self.db_user), ("DB_NAME", self.db_name))
            if not value
        ]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")
        return self

    @property
    def sqlalchemy_url(self):
        if self.database_url:
            return self.database_url
        return URL.create(
            "mysql+pymysql",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        )


def _load_dotenv():
    # Load from repo root if present, otherwise rely on environment variables.
    root_env = Path(__file__).resolve().parents[1] / ".env"
    if root_env.exists():
        load_dotenv(root_env)
    else:
        load_dotenv()


def load_settings(environ=None) -> Settings:
    values = {k: v for k, v in (os.environ if environ is None else environ).items() if v != ""}
    try:
        return Settings(**values)
    except ValidationError as exc:
        detail = "; ".join(str(e["msg"]).removeprefix("Value error, ") for e in exc.errors())
        raise RuntimeError(f"Invalid configuration: {detail}") from exc


@lru_cache()
def get_settings() -> Settings:
    _load_dotenv()
    return load_settings()
