from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Tuple

from pydantic_settings import BaseSettings
from pydantic import Field
from urllib.parse import quote_plus, urlparse

logger = logging.getLogger("freight-quote-api")


def _split_names(raw: str) -> Tuple[str, ...]:
    return tuple(name.strip() for name in raw.split(",") if name.strip())


class Settings(BaseSettings):
    # Prefer a full DATABASE_URL; or supply PG* parts and we'll build it.
    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    pg_host: str | None = Field(default=None, alias="PGHOST")
    pg_port: int = Field(default=5432, alias="PGPORT")
    pg_user: str | None = Field(default=None, alias="PGUSER")
    pg_password: str | None = Field(default=None, alias="PGPASSWORD")
    pg_db: str | None = Field(default=None, alias="PGDATABASE")

    statement_timeout_ms: int = Field(default=30000, alias="STATEMENT_TIMEOUT_MS")

    # Currency model: ocean is quoted in the source currency, everything else
    # (and the grand total) in the reporting currency.
    source_currency: str = Field(default="USD", alias="SOURCE_CURRENCY")
    reporting_currency: str = Field(default="AUD", alias="REPORTING_CURRENCY")
    usd_to_aud_rate: Decimal = Field(default=Decimal("1.50"), alias="USD_TO_AUD_RATE")

    ocean_row_limit: int = Field(default=200, alias="OCEAN_ROW_LIMIT")
    local_row_limit: int = Field(default=500, alias="LOCAL_ROW_LIMIT")
    transport_row_limit: int = Field(default=200, alias="TRANSPORT_ROW_LIMIT")
    options_page_size: int = Field(default=1000, alias="OPTIONS_PAGE_SIZE")

    # Physical table names have drifted between deployments; tried in order.
    ocean_tables: str = Field(default="ocean_freight,ocean_freight_rates", alias="OCEAN_TABLES")
    local_tables: str = Field(default="local,local_charges", alias="LOCAL_TABLES")
    transport_tables: str = Field(default="transport,transport_pricing", alias="TRANSPORT_TABLES")

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def table_candidates(self) -> Dict[str, Tuple[str, ...]]:
        return {
            "ocean": _split_names(self.ocean_tables),
            "local": _split_names(self.local_tables),
            "transport": _split_names(self.transport_tables),
        }

    @property
    def row_limits(self) -> Dict[str, int]:
        return {
            "ocean": self.ocean_row_limit,
            "local": self.local_row_limit,
            "transport": self.transport_row_limit,
        }

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            parsed = urlparse(self.database_url)

            # Log parsed components (without password)
            logger.info(f"DB target → user={parsed.username} host={parsed.hostname} port={parsed.port} db={parsed.path.lstrip('/')}")
            logger.info("DB config source → DATABASE_URL")

            # Re-encode the password to handle special characters
            if parsed.password:
                encoded_password = quote_plus(parsed.password)
                port = f":{parsed.port}" if parsed.port else ""
                fixed_url = f"{parsed.scheme}://{parsed.username}:{encoded_password}@{parsed.hostname}{port}{parsed.path}"
                if parsed.query:
                    fixed_url = f"{fixed_url}?{parsed.query}"
                return fixed_url

            return self.database_url

        if self.pg_host and self.pg_user and self.pg_password and self.pg_db:
            logger.info(f"DB target → user={self.pg_user} host={self.pg_host} port={self.pg_port} db={self.pg_db}")
            logger.info("DB config source → PG* environment variables")

            encoded_password = quote_plus(self.pg_password)
            encoded_user = quote_plus(self.pg_user)

            return (
                f"postgresql+psycopg://{encoded_user}:{encoded_password}"
                f"@{self.pg_host}:{self.pg_port}/{self.pg_db}?sslmode=require"
            )

        raise RuntimeError("DATABASE_URL or PG* vars must be set")

settings = Settings()
