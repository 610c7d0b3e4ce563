"""Effective range of spatial autocorrelation."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AutocorrelationEstimate:
    """Distance beyond which spatial correlation of a variable is negligible.

    Advisory input for choosing a block size or buffer radius; nothing in the
    partitioners applies it automatically.

    Attributes:
        source: Name of the variable (band or feature).
        effective_range: Distance at which the remaining correlation reaches
            the requested threshold.
        method: How the estimate was obtained, e.g. 'variogram:spherical'.
        nugget: Fitted nugget of the variogram model.
        sill: Fitted total sill.
        range_param: Fitted model range parameter.
        r_squared: Goodness of fit of the variogram model.
        n_samples: Number of locations used.
    """

    source: str
    effective_range: float
    method: str
    nugget: Optional[float] = None
    sill: Optional[float] = None
    range_param: Optional[float] = None
    r_squared: Optional[float] = None
    n_samples: int = 0

    def __post_init__(self) -> None:
        """Validate AutocorrelationEstimate parameters."""
        if not self.effective_range >= 0:
            raise ValueError(
                f"effective_range must be non-negative, got {self.effective_range}"
            )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"AutocorrelationEstimate(source={self.source}, "
            f"range={self.effective_range:.4f}, method={self.method})"
        )
