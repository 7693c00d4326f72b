"""YAML policy-pack loader.

A policy pack is a list of overrides applied through the admin surface,
for example a promotion that opens project creation to Basic users on the
Pro plan.

Schema
------
::

    version: "1.0"
    description: "Spring promotion"
    policies:
      - role: basic
        resource: project
        action: create
        plan: pro
        allowed: true
        reason: "promo"

Example
-------
::

    loader = PolicyLoader()
    requests = loader.load("promo.yaml")
    service.apply_policies("admin-1", requests)
"""
from __future__ import annotations

import logging
from pathlib import Path

import pydantic
import yaml

from rolegate.admin.requests import PolicyUpdateRequest, validation_error_from

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


class PolicyConfigError(ValueError):
    """Raised when a policy pack is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the pack that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


class PolicyLoader:
    """Loads policy packs from YAML files, strings or dicts.

    Parameters
    ----------
    strict:
        When ``True``, unknown top-level keys are an error.  Default
        ``False`` (unknown keys are ignored).
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "policies", "metadata", "description"]
    )

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def load(self, config_path: str | Path) -> list[PolicyUpdateRequest]:
        """Load a policy pack from disk.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        PolicyConfigError
            If it cannot be parsed or fails validation.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Policy pack not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise PolicyConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build(raw, config_path=str(config_path))

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> list[PolicyUpdateRequest]:
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise PolicyConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build(raw, config_path=config_path)

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> list[PolicyUpdateRequest]:
        return self._build(config, config_path=config_path)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(self, raw: object, config_path: str | None) -> list[PolicyUpdateRequest]:
        if not isinstance(raw, dict):
            raise PolicyConfigError("Policy pack must be a YAML mapping.", config_path)
        if "policies" not in raw:
            raise PolicyConfigError("Policy pack must contain a 'policies' list.", config_path)
        if not isinstance(raw["policies"], list):
            raise PolicyConfigError("Policy pack 'policies' must be a list.", config_path)

        if self._strict:
            unknown_keys = set(raw.keys()) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise PolicyConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}.", config_path
                )

        version = str(raw.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise PolicyConfigError(
                f"Unsupported policy pack version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        requests: list[PolicyUpdateRequest] = []
        seen: set[object] = set()
        for index, entry in enumerate(raw["policies"]):
            if not isinstance(entry, dict):
                raise PolicyConfigError(f"Entry {index} must be a mapping.", config_path)
            try:
                request = PolicyUpdateRequest.model_validate(entry)
            except pydantic.ValidationError as exc:
                raise PolicyConfigError(
                    f"Error in policy at index {index}: {validation_error_from(exc)}",
                    config_path,
                ) from exc
            if request.key in seen:
                raise PolicyConfigError(
                    f"Duplicate policy for {request.key} at index {index}.", config_path
                )
            seen.add(request.key)
            requests.append(request)

        logger.info("Loaded %d policy overrides from %s", len(requests), config_path or "<dict>")
        return requests


__all__ = ["PolicyConfigError", "PolicyLoader"]
