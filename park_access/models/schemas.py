"""
Pydantic schemas for calibration inputs in Park Access Analysis.
"""
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, field_validator, model_validator

from park_access.config import config


class CoefficientVector(BaseModel):
    """Logsum coefficients: distance, size and the optional social signal."""
    distance: float
    size: float
    signal: Optional[float] = None

    @classmethod
    def from_sequence(cls, betas: Sequence[float]) -> 'CoefficientVector':
        """Build from (distance, size[, signal])."""
        if len(betas) not in (2, 3):
            raise ValueError(f"Expected 2 or 3 coefficients, got {len(betas)}")
        signal = float(betas[2]) if len(betas) == 3 and betas[2] is not None else None
        return cls(distance=float(betas[0]), size=float(betas[1]), signal=signal)

    def as_tuple(self) -> Tuple[float, ...]:
        if self.signal is None:
            return (self.distance, self.size)
        return (self.distance, self.size, self.signal)

    @property
    def is_behavioral(self) -> bool:
        """Accessibility does not increase with distance or decrease with size."""
        return self.distance <= 0 and self.size >= 0


class CalibrationBounds(BaseModel):
    """
    Box constraints of the calibration search.

    None stands for an unbounded side. The distance coefficient can never be
    positive and the size coefficient never negative.
    """
    distance: Tuple[Optional[float], float] = (-10.0, 0.0)
    size: Tuple[float, Optional[float]] = (0.0, 10.0)
    signal: Tuple[Optional[float], Optional[float]] = (-10.0, 10.0)

    @field_validator('distance')
    @classmethod
    def check_distance(cls, v):
        if v[1] > 0:
            raise ValueError("Distance coefficient upper bound must be <= 0")
        return v

    @field_validator('size')
    @classmethod
    def check_size(cls, v):
        if v[0] < 0:
            raise ValueError("Size coefficient lower bound must be >= 0")
        return v

    @model_validator(mode='after')
    def check_order(self):
        for name in ('distance', 'size', 'signal'):
            low, high = getattr(self, name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{name} bounds are reversed: ({low}, {high})")
        return self

    @classmethod
    def from_config(cls) -> 'CalibrationBounds':
        """Bounds from the ``calibration`` configuration section."""
        signal_bound = config.get('calibration.signal_bound')
        return cls(
            distance=(config.get('calibration.distance_lower', -10.0), 0.0),
            size=(0.0, config.get('calibration.size_upper', 10.0)),
            signal=(-signal_bound, signal_bound) if signal_bound is not None else (None, None),
        )

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[Optional[float], Optional[float]]]) -> 'CalibrationBounds':
        """Build from [(low, high), ...] ordered as distance, size[, signal]."""
        if len(pairs) not in (2, 3):
            raise ValueError(f"Expected 2 or 3 bound pairs, got {len(pairs)}")
        kwargs = {'distance': tuple(pairs[0]), 'size': tuple(pairs[1])}
        if len(pairs) == 3:
            kwargs['signal'] = tuple(pairs[2])
        return cls(**kwargs)

    def as_list(self, n_coefficients: int) -> List[Tuple[Optional[float], Optional[float]]]:
        """Bounds in the layout scipy.optimize.minimize expects."""
        pairs = [self.distance, self.size, self.signal]
        return [tuple(pair) for pair in pairs[:n_coefficients]]
