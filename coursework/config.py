"""
Platform configuration.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from .core.exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class PlatformConfig(BaseModel):
    """Validated settings for :class:`~coursework.main.CourseworkPlatform`."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    log_level: str = "INFO"
    course_code_max_retries: int = Field(default=5, ge=1)
    lock_timeout_seconds: float = Field(default=5.0, gt=0)

    @field_validator('log_level')
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]] = None) -> 'PlatformConfig':
        try:
            return cls(**(data or {}))
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Invalid platform configuration",
                details={'errors': [
                    {'field': '.'.join(str(part) for part in error['loc']), 'message': error['msg']}
                    for error in e.errors()
                ]}
            ) from e
