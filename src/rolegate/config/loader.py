"""rolegate configuration loader with Pydantic v2 validation.

Loads and validates a ``rolegate.yaml`` file into a typed
:class:`RolegateConfig`.  Every section is optional.  Unknown keys are
allowed so older binaries can read newer files.

Example
-------
>>> loader = ConfigLoader()
>>> config = loader.load_string("backup:\\n  max_backups: 10\\n")
>>> config.backup.max_backups
10
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from rolegate.policies.model import Role, SubscriptionPlan


class AuditConfig(BaseModel):
    """Audit trail settings."""

    model_config = {"extra": "allow"}

    log_path: Path | None = Field(default=None)


class ResolverConfig(BaseModel):
    """Decision resolver settings."""

    model_config = {"extra": "allow"}

    cache_enabled: bool = Field(default=True)


class BackupConfig(BaseModel):
    """Policy backup settings."""

    model_config = {"extra": "allow"}

    max_backups: int = Field(default=50, ge=1)


class NotificationConfig(BaseModel):
    """User notification settings."""

    model_config = {"extra": "allow"}

    webhook_url: str | None = Field(default=None)
    webhook_format: Literal["slack", "teams", "generic"] = Field(default="generic")
    timeout_seconds: float = Field(default=5.0, gt=0)


class PrivilegeConfig(BaseModel):
    """Admin privilege enforcement."""

    model_config = {"extra": "allow"}

    enforce: bool = Field(default=True)


class UserConfig(BaseModel):
    """A user account seeded into the in-memory directory."""

    id: str
    email: str
    role: Role
    plan: SubscriptionPlan = Field(default=SubscriptionPlan.BASIC)

    @field_validator("role", "plan", mode="before")
    @classmethod
    def normalise_enum(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def email_must_have_at(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError(f"invalid email address {value!r}")
        return value


class RolegateConfig(BaseModel):
    """Top-level configuration schema."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    audit: AuditConfig = Field(default_factory=AuditConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    privileges: PrivilegeConfig = Field(default_factory=PrivilegeConfig)
    users: list[UserConfig] = Field(default_factory=list)

    @field_validator("users")
    @classmethod
    def user_ids_unique(cls, users: list[UserConfig]) -> list[UserConfig]:
        ids = [u.id for u in users]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate user ids: {duplicates}")
        return users


class ConfigLoader:
    """Loads and validates rolegate YAML configuration."""

    def load(self, config_path: Path) -> RolegateConfig:
        """Load and validate a configuration file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        pydantic.ValidationError:
            When the content fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"rolegate config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return RolegateConfig.model_validate(raw)

    def load_string(self, yaml_content: str) -> RolegateConfig:
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return RolegateConfig.model_validate(raw)

    def defaults(self) -> RolegateConfig:
        return RolegateConfig()


__all__ = [
    "AuditConfig",
    "BackupConfig",
    "ConfigLoader",
    "NotificationConfig",
    "PrivilegeConfig",
    "ResolverConfig",
    "RolegateConfig",
    "UserConfig",
]
