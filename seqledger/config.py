"""Environment-driven client settings."""

from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for SequenceClient.from_settings.

    Read from ``SEQ_*`` environment variables; the API address keeps its
    historical ``SEQADDR`` name.
    """

    model_config = SettingsConfigDict(env_prefix="SEQ_", populate_by_name=True)

    ledger_name: str = ""
    credential: str = ""
    addr: Optional[str] = Field(default=None, validation_alias="SEQADDR")
    timeout: float = 30.0
    max_retries: int = 10
