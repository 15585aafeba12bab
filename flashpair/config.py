"""
Runtime configuration for the flashpair engine.

Configs are frozen dataclasses with safe defaults. Overrides can be loaded from a
YAML mapping (`AmmConfig.from_yaml`) or from `FLASHPAIR_*` environment variables
(`AmmConfig.from_env`). Unknown keys and non-int values are rejected (fail-closed).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, Union

import yaml


BPS_DENOM = 10_000
DEFAULT_FEE_BPS = 30
DEFAULT_MAX_CALL_DEPTH = 64


def _require_int(name: str, value: Any) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class RuntimeConfig:
    """Limits applied by the call-frame runtime."""

    # Nested call frames allowed in one call chain (borrow -> callback -> swap -> transfer ...).
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    # Deliver committed events to subscribers; when False committed events are dropped.
    deliver_events: bool = True

    def __post_init__(self) -> None:
        _require_int("max_call_depth", self.max_call_depth)
        if self.max_call_depth < 4:
            raise ValueError(f"max_call_depth must be >= 4: {self.max_call_depth}")
        if not isinstance(self.deliver_events, bool):
            raise ValueError("deliver_events must be a bool")


@dataclass(frozen=True)
class AmmConfig:
    """Top-level engine config."""

    # Fixed fee constant for fee-bearing quotes (pool pricing itself is fee-free).
    fee_bps: int = DEFAULT_FEE_BPS
    log_level: str = "INFO"
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)

    def __post_init__(self) -> None:
        _require_int("fee_bps", self.fee_bps)
        if not (0 <= self.fee_bps < BPS_DENOM):
            raise ValueError(f"fee_bps must be in [0, {BPS_DENOM}): {self.fee_bps}")
        if not isinstance(self.log_level, str) or self.log_level.upper() not in (
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        ):
            raise ValueError(f"unsupported log_level: {self.log_level!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AmmConfig":
        if not isinstance(data, Mapping):
            raise ValueError("config must be a mapping")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")

        kwargs = {k: v for k, v in data.items() if k != "runtime"}
        runtime_raw = data.get("runtime")
        if runtime_raw is not None:
            if not isinstance(runtime_raw, Mapping):
                raise ValueError("runtime must be a mapping")
            runtime_known = {f.name for f in fields(RuntimeConfig)}
            runtime_unknown = sorted(set(runtime_raw) - runtime_known)
            if runtime_unknown:
                raise ValueError(f"unknown runtime keys: {', '.join(runtime_unknown)}")
            kwargs["runtime"] = RuntimeConfig(**runtime_raw)
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AmmConfig":
        """Load a config from a YAML file. An empty file yields the defaults."""
        raw = Path(path).read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
        if data is None:
            return cls()
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AmmConfig":
        """
        Load overrides from environment variables.

        Environment variables:
            FLASHPAIR_FEE_BPS: fee constant for fee-bearing quotes
            FLASHPAIR_LOG_LEVEL: logging level name
            FLASHPAIR_MAX_CALL_DEPTH: runtime call-depth limit
        """
        env = os.environ if environ is None else environ
        config = cls()
        if "FLASHPAIR_FEE_BPS" in env:
            config = replace(config, fee_bps=int(env["FLASHPAIR_FEE_BPS"]))
        if "FLASHPAIR_LOG_LEVEL" in env:
            config = replace(config, log_level=env["FLASHPAIR_LOG_LEVEL"])
        if "FLASHPAIR_MAX_CALL_DEPTH" in env:
            config = replace(
                config,
                runtime=replace(config.runtime, max_call_depth=int(env["FLASHPAIR_MAX_CALL_DEPTH"])),
            )
        return config
