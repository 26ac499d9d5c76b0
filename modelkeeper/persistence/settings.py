"""Engine configuration loaded from MODELKEEPER_* environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ModelkeeperSettings(BaseSettings):
    """Persistence engine settings.

    All fields are read from environment variables with the ``MODELKEEPER_``
    prefix.  For example, ``MODELKEEPER_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MODELKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_json: bool = False

    log_file: str | None = None
    """Optional path of a rotating DEBUG log file.  Relative paths resolve under ``base_path``."""

    # -- Data storage ----------------------------------------------------------
    data_root: str = "./data"
    """Root directory for engine-managed data (autosave snapshots, archives)."""

    data_prefix: str | None = None
    """Optional namespace prefix: paths become ``{data_root}/{data_prefix}/...``."""

    archive_dir: str | None = None
    """Where ZIP fallbacks are written.  Defaults to ``{base}/archives``."""

    # -- Workspace defaults ----------------------------------------------------
    default_owner_id: str = "offline-user"
    """Owner stamped on workspaces whose manifest does not name one."""

    # -- Save behaviour --------------------------------------------------------
    write_readme: bool = True
    """Emit a generated ``README.md`` at the workspace root on every save."""

    skip_unchanged_writes: bool = True
    """Skip rewriting files whose on-disk content already matches."""

    archive_on_cancel: bool = True
    """Write a ZIP archive when the user cancels the directory picker."""

    # -- Helpers ---------------------------------------------------------------

    @property
    def base_path(self) -> Path:
        base = Path(self.data_root)
        if self.data_prefix:
            base = base / self.data_prefix
        return base

    @property
    def archive_path(self) -> Path:
        return Path(self.archive_dir) if self.archive_dir else self.base_path / "archives"

    @property
    def log_path(self) -> Path | None:
        if not self.log_file:
            return None
        path = Path(self.log_file)
        return path if path.is_absolute() else self.base_path / path


@lru_cache(maxsize=1)
def get_settings() -> ModelkeeperSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return ModelkeeperSettings()
