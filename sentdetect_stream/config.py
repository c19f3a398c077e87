from __future__ import annotations

import codecs

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for sentdetect-stream.

    Every field can come from the environment (SENTDETECT_*) or a .env file;
    __main__.py uses them as defaults for the matching command line flags.
    """

    model_config = SettingsConfigDict(
        env_prefix="SENTDETECT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Flushing ---
    # Silence (no new paragraph text) longer than this forces the remainder out.
    max_idle_millis: int = Field(default=6000, ge=0)
    strip_newline: bool = Field(default=False)

    # --- Reading ---
    # 0 keeps the reader's own window (2000 ms).
    read_offset: int = Field(default=0, ge=0)
    buffer_size: int = Field(default=2000, ge=1)
    encoding: str = Field(default="utf-8")

    # --- Runtime ---
    log_level: str = Field(default="INFO")

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as err:
            raise ValueError(f"Unknown encoding '{value}'") from err
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()
