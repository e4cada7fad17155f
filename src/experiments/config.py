"""Solver configuration: JSON files plus dotted key=value overrides."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any

__all__ = [
    "SolverConfig",
    "load_json",
    "apply_overrides",
    "load_solver_config",
]


@dataclass(frozen=True)
class SolverConfig:
    """Hyper-parameters of one CA-SFISTA run.

    Attributes:
        b: Row sampling fraction.
        k: Samples per communication round.
        t: Total middle-loop budget (ceil(t / k) rounds).
        Q: FISTA steps per sample.
        gamma: Step size.
        lam: L1 penalty weight.
        tolerance: Early-stop relative error to the reference optimum.
        num_partitions: Partitions for distributed matrices.
        seed: Sampling seed (None for fresh entropy).
        log_objective: Evaluate the full objective after every sample.
    """

    b: float = 0.2
    k: int = 10
    t: int = 100
    Q: int = 10
    gamma: float = 0.01
    lam: float = 0.1
    tolerance: float = 0.1
    num_partitions: int = 4
    seed: int | None = None
    log_objective: bool = True

    def validate(self) -> SolverConfig:
        """Check value ranges and return self.

        Raises:
            ValueError: If a value is out of range.
        """
        if not 0.0 < self.b <= 1.0:
            raise ValueError(f"b must be in (0, 1], got {self.b}")
        for name in ("k", "t", "Q", "num_partitions"):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")
        if self.gamma <= 0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.lam < 0:
            raise ValueError(f"lam must be >= 0, got {self.lam}")
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        return self

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> SolverConfig:
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ValueError(f"Unknown solver config keys: {sorted(unknown)}")
        return cls(**dict(values)).validate()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def solver_kwargs(self) -> dict[str, Any]:
        """Keyword arguments accepted by CASFISTASolver."""
        params = self.to_dict()
        params.pop("seed")
        return params

    def with_updates(self, **changes: Any) -> SolverConfig:
        return replace(self, **changes).validate()


def load_json(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def apply_overrides(config: dict[str, Any], overrides: Sequence[str]) -> dict[str, Any]:
    """Return a copy of config with dotted key=value overrides applied.

    Values are parsed as JSON when possible, otherwise kept as strings.

    Raises:
        ValueError: If an override lacks '='.
    """
    result = json.loads(json.dumps(config))
    for item in overrides:
        if "=" not in item:
            raise ValueError(f"Override must be key=value, got: {item}")
        path, raw_val = item.split("=", 1)
        keys = path.split(".")
        target = result
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = _parse_value(raw_val)
    return result


def load_solver_config(
    path: Path | None = None, overrides: Sequence[str] = ()
) -> SolverConfig:
    """Load a SolverConfig from an optional JSON file and overrides.

    The JSON file may hold the solver keys at the top level or under a
    "solver" key.
    """
    raw: dict[str, Any] = {}
    if path is not None:
        raw = load_json(path)
        if isinstance(raw.get("solver"), dict):
            raw = raw["solver"]
    raw = apply_overrides(raw, overrides)
    return SolverConfig.from_mapping(raw)
