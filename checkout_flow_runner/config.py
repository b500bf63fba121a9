"""Runner configuration built once from the process environment."""

from collections.abc import Mapping
from pathlib import Path
from typing import Literal, Self

from pydantic import BaseModel, ConfigDict, Field

CredentialPolicy = Literal["fallback", "strict"]


class RunnerConfig(BaseModel):
    """Immutable settings shared by the executor, scheduler and aggregator.

    Field aliases are the environment variable names; fields can also be set
    by name, which is how tests build synthetic configs.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    screenshot_dir: Path = Field(
        default=Path("./results/screenshots"), alias="SCREENSHOT_DIR"
    )
    results_dir: Path = Field(default=Path("./results"), alias="RESULTS_DIR")
    parallel_count: int = Field(default=2, ge=1, alias="PARALLEL_COUNT")
    # Total attempts per test case, the first run included
    max_retries: int = Field(default=2, ge=1, alias="MAX_RETRIES")
    retry_delay_ms: int = Field(default=5000, ge=0, alias="RETRY_DELAY_MS")
    worker_start_delay_ms: int = Field(
        default=2000, ge=0, alias="WORKER_START_DELAY_MS"
    )
    case_interval_ms: int = Field(default=1000, ge=0, alias="CASE_INTERVAL_MS")
    click_attempts: int = Field(default=3, ge=1, alias="CLICK_ATTEMPTS")
    click_cooldown_ms: int = Field(default=2000, ge=0, alias="CLICK_COOLDOWN_MS")
    navigation_timeout_ms: int = Field(
        default=60_000, gt=0, alias="NAVIGATION_TIMEOUT_MS"
    )
    confirmation_marker: str = Field(
        default="/confirm", min_length=1, alias="CONFIRMATION_MARKER"
    )
    credential_policy: CredentialPolicy = Field(
        default="fallback", alias="CREDENTIAL_POLICY"
    )

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Self:
        """Build the config from environment variables, ignoring empty values."""
        known = {
            field.alias
            for field in cls.model_fields.values()
            if field.alias is not None
        }
        values = {
            key: value
            for key, value in environ.items()
            if key in known and value.strip()
        }
        return cls.model_validate(values)
