from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coinpayments.services.webhook_verify import SUPPORTED_ALGORITHMS


class Settings(BaseSettings):
    webhook_secret: str
    webhook_tolerance_seconds: int = 300
    signature_algorithm: str = "sha512"
    signature_encoding: Literal["hex", "base64"] = "hex"
    timestamp_format: Literal["unix", "iso8601"] = "unix"
    # bind client id and timestamp into the signed message
    sign_headers: bool = False
    max_body_size: int = 1_048_576  # 1 MiB
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("signature_algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        value = value.lower()
        if value not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"signature_algorithm must be one of {SUPPORTED_ALGORITHMS}")
        return value

    @field_validator("webhook_tolerance_seconds", "max_body_size")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be non-negative")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
