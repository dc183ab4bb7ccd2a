"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from cms_migrator.utils.strings import is_absolute_url


class MigrationConfig(BaseModel):
    """A validated configuration model for the application."""

    # Sites & Authentication
    source_url: str
    destination_url: str = ""
    files_base_url: str = ""
    username: str = ""
    password: str = ""

    # Pipeline Settings
    workers: int = 3
    snapshot_dir: str = "snapshots"
    download_dir: str = "files"
    max_index_pages: int = -1
    dry_run: bool = False

    # Browser Settings
    headless: bool = True
    navigation_attempts: int = 3
    navigation_timeout: float = 30.0
    stable_poll_interval: float = 1.0
    stable_required_reads: int = 3
    stable_timeout: float = 30.0
    create_max_attempts: int = 10

    # Download Settings
    http_timeout: float = 60.0

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("source_url", "destination_url", "files_base_url")
    @classmethod
    def validate_urls(cls, v: str) -> str:
        """Ensures site URLs are absolute when given."""
        if v and not is_absolute_url(v):
            raise ValueError(f"'{v}' must be an absolute URL (e.g. https://cms.example.com).")
        return v

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of download workers."""
        if v < 1 or v > 5:
            raise ValueError("Workers must be between 1 and 5.")
        return v

    @field_validator("max_index_pages")
    @classmethod
    def validate_max_pages(cls, v: int) -> int:
        if v == 0 or v < -1:
            raise ValueError("max_index_pages must be a positive number, or -1 for all pages.")
        return v

    @field_validator(
        "navigation_attempts", "stable_required_reads", "create_max_attempts"
    )
    @classmethod
    def validate_positive_counts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Attempt and read counts must be at least 1.")
        return v

    @field_validator(
        "navigation_timeout", "stable_poll_interval", "stable_timeout", "http_timeout"
    )
    @classmethod
    def validate_positive_durations(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts and intervals must be greater than zero.")
        return v

    @model_validator(mode="after")
    def validate_timing(self) -> "MigrationConfig":
        """The stability wait needs room for at least one poll."""
        if self.stable_timeout < self.stable_poll_interval:
            raise ValueError("stable_timeout cannot be shorter than stable_poll_interval.")
        return self

    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
