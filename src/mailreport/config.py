"""Configuration settings for mailreport."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CASE_ID_PATTERN = r"[A-Z][A-Z0-9]+-\d+"
GROUPING_STRATEGY_NAMES = ("display_name", "case_id", "title")
DEFAULT_GROUPING_CHAIN = GROUPING_STRATEGY_NAMES


class Settings(BaseSettings):
    """Settings loaded from environment variables and an optional ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Artifacts
    results_path: Path = Path("test-results.json")
    detailed_report_path: Path = Path("detailed-test-report.json")
    html_report_path: Path = Path("playwright-report/index.html")
    html_output_path: Path | None = None

    # Waiting for artifacts
    results_wait_attempts: int = 10
    detailed_wait_attempts: int = 20
    wait_interval_seconds: float = 0.5

    # Mail
    send_email: bool = True
    email_user: str = "test-automation@localhost"
    email_recipients: str = ""
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_use_tls: bool = False
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_timeout_seconds: float = 30.0

    # Report content
    report_title: str = "Automation Test Report"
    case_id_pattern: str = DEFAULT_CASE_ID_PATTERN
    grouping_chain: str = ",".join(DEFAULT_GROUPING_CHAIN)

    # Logging
    log_level: str = "INFO"
    log_json_format: bool = False

    @field_validator("results_wait_attempts", "detailed_wait_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("wait attempts must be at least 1")
        return value

    @field_validator("grouping_chain")
    @classmethod
    def _known_strategies(cls, value: str) -> str:
        names = [s.strip() for s in value.split(",") if s.strip()]
        unknown = [n for n in names if n not in GROUPING_STRATEGY_NAMES]
        if unknown:
            raise ValueError(f"unknown grouping strategies: {', '.join(unknown)}")
        return value

    @property
    def recipients(self) -> list[str]:
        """Recipient addresses parsed from the comma-separated setting."""
        return [r.strip() for r in self.email_recipients.split(",") if r.strip()]

    @property
    def grouping_strategies(self) -> list[str]:
        """Grouping strategy names in fallback order."""
        return [s.strip() for s in self.grouping_chain.split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
