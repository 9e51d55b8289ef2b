"""Configuration helpers for the Contact Book service and CLI."""
from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional


DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "contacts_data"


class ConfigError(RuntimeError):
    """Raised when required configuration is missing."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the contact store and its consumers."""

    environment: str = "local"
    collection: str = "contacts"
    force_file: bool = False
    data_dir: Path = DEFAULT_DATA_DIR
    storage_bucket: Optional[str] = None
    signed_url_minutes: int = 15

    @property
    def backend(self) -> str:
        return "file" if self.force_file else "firestore"


def load_settings() -> Settings:
    """Load settings from environment variables.

    Returns:
        Settings resolved from ``CONTACTS_*`` variables.

    Raises:
        ConfigError: if the Firestore backend is selected without a storage
            bucket, or a numeric variable is malformed.
    """

    force_file = os.getenv("CONTACTS_FORCE_FILE", "0") == "1"
    bucket = (os.getenv("CONTACTS_STORAGE_BUCKET") or "").strip() or None

    if not force_file and not bucket:
        raise ConfigError(
            "Missing Cloud Storage bucket. Export CONTACTS_STORAGE_BUCKET or "
            "set CONTACTS_FORCE_FILE=1 to use the local file store."
        )

    raw_minutes = os.getenv("CONTACTS_SIGNED_URL_MINUTES", "15")
    try:
        signed_url_minutes = int(raw_minutes)
    except ValueError as exc:
        raise ConfigError(
            f"CONTACTS_SIGNED_URL_MINUTES must be an integer, got {raw_minutes!r}."
        ) from exc

    return Settings(
        environment=os.getenv("CONTACTS_ENV", "local"),
        collection=os.getenv("CONTACTS_COLLECTION", "contacts"),
        force_file=force_file,
        data_dir=Path(os.getenv("CONTACTS_DIR", str(DEFAULT_DATA_DIR))),
        storage_bucket=bucket,
        signed_url_minutes=signed_url_minutes,
    )
