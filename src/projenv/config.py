import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .errors import ConfigError

DEFAULT_CONFIG = {
    "local-registry": "localhost:32000",
    "route-probe-address": "1.1.1.1",
    "probe-timeout": 5,
    "cluster-probe": "kubectl",
}

# Ordered by precedence when more than one vendor's variables are populated.
CI_VENDORS = (
    ("bitbucket", "BITBUCKET_BUILD_NUMBER", "BITBUCKET_COMMIT"),
    ("travis", "TRAVIS_BUILD_NUMBER", "TRAVIS_COMMIT"),
    ("circle", "CIRCLE_BUILD_NUM", "CIRCLE_SHA1"),
)


@dataclass(frozen=True)
class CISignal:
    """Build number and commit reported by one CI vendor."""

    vendor: str
    build_number: str = ""
    commit: str = ""


@dataclass(frozen=True)
class ResolverConfig:
    """
    Explicit inputs to the resolver.

    Every override is optional; an empty string is treated the same as unset.
    """

    proj_root: Optional[str] = None
    namespace: Optional[str] = None
    docker_repo: Optional[str] = None
    docker_tag: Optional[str] = None
    ci_signals: tuple[CISignal, ...] = field(default_factory=tuple)

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "ResolverConfig":
        if environ is None:
            environ = os.environ
        signals = tuple(
            CISignal(
                vendor=vendor,
                build_number=environ.get(build_var, ""),
                commit=environ.get(commit_var, ""),
            )
            for vendor, build_var, commit_var in CI_VENDORS
        )
        return cls(
            proj_root=environ.get("PROJ_ROOT") or None,
            namespace=environ.get("NAMESPACE") or None,
            docker_repo=environ.get("DOCKER_REPO") or None,
            docker_tag=environ.get("DOCKER_TAG") or None,
            ci_signals=signals,
        )


def get_default_config_path() -> Path:
    return Path.home() / ".config" / "projenv" / "config.yml"


STRING_SETTINGS = ("local-registry", "route-probe-address", "cluster-probe")


def validate_config(config: dict[str, Any], config_path: Path) -> None:
    """Raises ConfigError if a setting has the wrong type."""
    for key in STRING_SETTINGS:
        value = config.get(key)
        if not isinstance(value, str) or not value:
            raise ConfigError(f"Setting '{key}' in {config_path} must be a non-empty string.")
    timeout = config.get("probe-timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(f"Setting 'probe-timeout' in {config_path} must be a positive number.")


def load_config(config_path: Optional[Path]) -> dict[str, Any]:
    config = DEFAULT_CONFIG.copy()
    if config_path and config_path.exists():
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            # Parser errors span several lines; keep the diagnostic on one.
            detail = " ".join(str(e).split())
            raise ConfigError(f"Could not parse settings file {config_path}: {detail}")
        except OSError as e:
            raise ConfigError(f"Could not read settings file {config_path}: {e.strerror}")
        if user_config is not None and not isinstance(user_config, dict):
            raise ConfigError(f"Settings file {config_path} must contain a mapping.")
        if user_config:
            config.update(user_config)
            validate_config(config, config_path)
    return config
