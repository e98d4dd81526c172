"""Discovery models: the companion service address and the retry policy."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_RETRY_DELAY_SECONDS = 2.0


class DiscoveryResult(BaseModel):
    """Network address of the companion service. The wire field is `ip`."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    host: str = Field(alias="ip", min_length=1)
    port: int = Field(ge=1, le=65535)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class RetryPolicy(BaseModel):
    """How many discovery attempts to make and how long to wait between them."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    delay_between_attempts: float = Field(default=DEFAULT_RETRY_DELAY_SECONDS, ge=0)

    @property
    def budget_seconds(self) -> float:
        """Upper bound on total discovery time, or 0 when there is no delay."""
        return self.max_attempts * self.delay_between_attempts


FALLBACK_RESULT = DiscoveryResult(host="127.0.0.1", port=8080)
