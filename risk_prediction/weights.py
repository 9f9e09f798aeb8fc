"""
Risk Prediction Engine - Factor Weights.

============================================================
PURPOSE
============================================================
Immutable per-user weight table.

Each weight is the number of risk points a factor adds when
it fires. Weights are clamped to [min_weight, max_weight] on
construction, so every FactorWeights in circulation already
satisfies the bounds.

The Weight Adapter returns new instances; nothing mutates a
FactorWeights in place.

============================================================
"""

import math
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .config import DEFAULT_WEIGHTS, AdaptationConfig
from .types import RiskFactor


FactorKey = Union[str, RiskFactor]


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))


def round_half_up(value: float) -> int:
    """Round .5 up, matching how the web client rounds scores."""
    return int(math.floor(value + 0.5))


class FactorWeights(Mapping[RiskFactor, float]):
    """
    Mapping from RiskFactor to a positive weight.

    Every factor always has an entry; missing entries fall back
    to the configured defaults.
    """

    __slots__ = ("_weights", "_min_weight", "_max_weight")

    def __init__(
        self,
        weights: Optional[Mapping[FactorKey, float]] = None,
        min_weight: float = AdaptationConfig.min_weight,
        max_weight: float = AdaptationConfig.max_weight,
        defaults: Optional[Mapping[str, float]] = None,
    ):
        """
        Initialize a weight table.

        Args:
            weights: Overrides keyed by RiskFactor or factor name.
                     Unknown names are ignored.
            min_weight: Lower clamp bound
            max_weight: Upper clamp bound
            defaults: Base weights keyed by factor name
        """
        base = dict(defaults if defaults is not None else DEFAULT_WEIGHTS)
        resolved: Dict[RiskFactor, float] = {}

        for factor in RiskFactor.all_factors():
            resolved[factor] = float(base.get(factor.value, DEFAULT_WEIGHTS[factor.value]))

        for key, value in (weights or {}).items():
            factor = RiskFactor.from_name(key)
            if factor is not None:
                resolved[factor] = float(value)

        self._min_weight = float(min_weight)
        self._max_weight = float(max_weight)
        self._weights = {
            factor: clamp(value, self._min_weight, self._max_weight)
            for factor, value in resolved.items()
        }

    # --------------------------------------------------------
    # MAPPING PROTOCOL
    # --------------------------------------------------------

    def __getitem__(self, key: FactorKey) -> float:
        factor = RiskFactor.from_name(key)
        if factor is None:
            raise KeyError(key)
        return self._weights[factor]

    def __iter__(self) -> Iterator[RiskFactor]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FactorWeights):
            return self._weights == other._weights
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted((f.value, w) for f, w in self._weights.items())))

    def __repr__(self) -> str:
        inner = ", ".join(f"{f.value}={w:g}" for f, w in self._weights.items())
        return f"FactorWeights({inner})"

    # --------------------------------------------------------
    # ACCESSORS
    # --------------------------------------------------------

    @property
    def min_weight(self) -> float:
        return self._min_weight

    @property
    def max_weight(self) -> float:
        return self._max_weight

    def with_weight(self, factor: FactorKey, value: float) -> "FactorWeights":
        """Return a copy with one weight replaced (and clamped)."""
        resolved = RiskFactor.from_name(factor)
        if resolved is None:
            raise KeyError(factor)
        updated = {f.value: w for f, w in self._weights.items()}
        updated[resolved.value] = value
        return FactorWeights(updated, self._min_weight, self._max_weight)

    def to_dict(self) -> Dict[str, float]:
        """Serialize keyed by factor name."""
        return {factor.value: weight for factor, weight in self._weights.items()}

    # --------------------------------------------------------
    # CONSTRUCTORS
    # --------------------------------------------------------

    @classmethod
    def defaults(cls, config: Optional[AdaptationConfig] = None) -> "FactorWeights":
        config = config or AdaptationConfig()
        return cls(min_weight=config.min_weight, max_weight=config.max_weight)

    @classmethod
    def from_dict(
        cls,
        data: Optional[Mapping[str, Any]],
        config: Optional[AdaptationConfig] = None,
        defaults: Optional[Mapping[str, float]] = None,
    ) -> "FactorWeights":
        """
        Restore weights from a persisted dict.

        Unknown keys are ignored; missing keys use defaults.
        """
        config = config or AdaptationConfig()
        return cls(
            weights=dict(data or {}),
            min_weight=config.min_weight,
            max_weight=config.max_weight,
            defaults=defaults,
        )
