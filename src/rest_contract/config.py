"""Client settings read from REST_CONTRACT_* environment variables."""

import os
from collections.abc import Mapping

from pydantic import BaseModel, field_validator

ENV_PREFIX = "REST_CONTRACT_"
DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"


class ClientSettings(BaseModel):
    base_url: str | None = None
    timeout: float | None = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ClientSettings":
        """Load settings, e.g. REST_CONTRACT_BASE_URL, REST_CONTRACT_TIMEOUT."""
        environ = os.environ if environ is None else environ
        values = {}
        for field in cls.model_fields:
            raw = environ.get(ENV_PREFIX + field.upper())
            if raw is not None and raw != "":
                values[field] = raw
        return cls.model_validate(values)
