"""Configuration for status-bridge."""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STATUS_BRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = "status-bridge"
    log_level: str = "INFO"
    pattern: str = "reqrep"
    inbound_endpoint: str = "tcp://*:5555"
    outbound_endpoint: str = "tcp://localhost:5556"
    outbound_enabled: bool = True
    outbox_size: int = 16
    handler_error_policy: str = "nack"
    assets_dir: str = "assets"
    font_path: str = ""
    topics_path: str = ""
    lock_state_id: str = "extra-connectors.keyboard-lock-state.state"
    lock_true_label: str = "Locked"
    lock_false_label: str = "Unlocked"
    battery_state_id: str = "extra-connectors.battery-monitor.state-image"
    clock_state_id: str = "extra-connectors.current-time.state"
    clock_enabled: bool = True
    clock_interval_sec: float = 60.0
    http_host: str = "0.0.0.0"
    http_port: int = 8000


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


settings = Settings()
