"""Alert engine configuration.

Controls the heartbeat interval, cooldown window, spike override and the
default temperature bounds. All settings can be overridden via environment
variables using the names the device fleet is already deployed with
(``HEARTBEAT_SEC``, ``ALERT_COOLDOWN_SEC``, ``SPIKE_C``, ...).
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from freezewatch.alerts.schemas import Bounds

# Offline detection never runs tighter than this, whatever HEARTBEAT_SEC says.
MIN_HEARTBEAT_SEC = 30.0


class AlertConfig(BaseSettings):
    """Thresholds for the per-device alert state machine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Expected reporting interval of a device
    heartbeat_sec: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between readings a healthy device is expected to send",
    )
    keepalive_ms: float | None = Field(
        default=None,
        gt=0,
        description="Device keepalive period (ms); sets heartbeat_sec when that is unset",
    )
    offline_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Missed heartbeat intervals before a device is declared offline",
    )
    heartbeat_check_interval_sec: float = Field(
        default=60.0,
        gt=0,
        description="Seconds between heartbeat sweeps",
    )

    # Noise suppression
    alert_cooldown_sec: float = Field(
        default=900.0,
        ge=0,
        description="Seconds to suppress repeated notifications of the same kind",
    )
    spike_c: float = Field(
        default=1.5,
        ge=0,
        description="Temperature jump (C) that bypasses the alert cooldown",
    )

    # Default bounds used when a reading does not carry its own
    lower_bound_c: float = Field(default=-90.0, description="Default lower bound (C)")
    upper_bound_c: float = Field(default=-70.0, description="Default upper bound (C)")

    @model_validator(mode="after")
    def _heartbeat_from_keepalive(self) -> "AlertConfig":
        if "heartbeat_sec" not in self.model_fields_set and self.keepalive_ms:
            self.heartbeat_sec = self.keepalive_ms / 1000
        return self

    @property
    def cooldown_ms(self) -> int:
        return int(self.alert_cooldown_sec * 1000)

    @property
    def offline_after_ms(self) -> int:
        """Silence (ms) after which the heartbeat sweep marks a device offline."""
        heartbeat = max(MIN_HEARTBEAT_SEC, self.heartbeat_sec)
        return int(heartbeat * self.offline_multiplier * 1000)

    @property
    def default_bounds(self) -> Bounds:
        return Bounds(lower=self.lower_bound_c, upper=self.upper_bound_c)
