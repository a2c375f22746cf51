"""Application settings and shared constants."""

from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Orçamentos Fábrica"
    database_url: str = "sqlite:///./orcamentos.db"
    log_level: str = "INFO"
    cost_cache_enabled: bool = True
    quote_validity_days: int = 30
    client_quote_deadline_days: int = 7
    money_decimal_places: int = 2
    quote_number_prefix: str = "BV"

    @field_validator("quote_validity_days", "client_quote_deadline_days")
    @classmethod
    def validate_days(cls, v: int) -> int:
        if v < 1:
            raise ValueError("day counts must be at least 1")
        return v

    @field_validator("money_decimal_places")
    @classmethod
    def validate_decimal_places(cls, v: int) -> int:
        if v < 0 or v > 6:
            raise ValueError("money_decimal_places must be between 0 and 6")
        return v


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    if value is None:
        raise ValueError("cannot convert a missing value to Decimal")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal, places: int = 2) -> Decimal:
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


@lru_cache
def get_settings() -> Settings:
    return Settings()
