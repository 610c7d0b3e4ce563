"""Variogram analysis primitives.

Experimental semi-variograms, model fitting and the effective range of
spatial autocorrelation derived from a fitted model.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

import numpy as np
from scipy.optimize import brentq, curve_fit
from scipy.spatial.distance import pdist

from foldsmith.objects.pointset import PointSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariogramModel:
    """Container for fitted variogram model parameters.

    Attributes:
        model_type: Type of model ('spherical', 'exponential', 'gaussian').
        nugget: Nugget effect (small-scale variance).
        sill: Total sill (nugget + partial sill).
        range_param: Range parameter (correlation length).
        partial_sill: Partial sill (sill - nugget).
        r_squared: Goodness of fit.
    """

    model_type: str
    nugget: float
    sill: float
    range_param: float
    partial_sill: float
    r_squared: float

    def __post_init__(self) -> None:
        """Validate VariogramModel parameters."""
        if self.model_type not in VARIOGRAM_MODELS:
            raise ValueError(
                f"model_type must be one of {tuple(VARIOGRAM_MODELS)}, "
                f"got {self.model_type}"
            )

        if self.nugget < 0:
            raise ValueError(f"nugget must be non-negative, got {self.nugget}")

        if self.sill < self.nugget:
            raise ValueError(f"sill ({self.sill}) must be >= nugget ({self.nugget})")

        if self.range_param <= 0:
            raise ValueError(
                f"range_param must be positive for {self.model_type} model, "
                f"got {self.range_param}"
            )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"VariogramModel(type={self.model_type}, nugget={self.nugget:.4f}, "
            f"sill={self.sill:.4f}, range={self.range_param:.4f}, "
            f"r²={self.r_squared:.4f})"
        )


def _spherical_model(
    h: np.ndarray, nugget: float, sill: float, range_param: float
) -> np.ndarray:
    """Spherical variogram model.

    Args:
        h: Distance (lag).
        nugget: Nugget effect.
        sill: Total sill.
        range_param: Range parameter.

    Returns:
        Semi-variance values.
    """
    h = np.asarray(h, dtype=float)
    gamma = np.zeros_like(h, dtype=float)

    mask = h < range_param
    if np.any(mask):
        h_scaled = h[mask] / range_param
        gamma[mask] = nugget + (sill - nugget) * (1.5 * h_scaled - 0.5 * h_scaled**3)

    gamma[~mask] = sill
    return gamma


def _exponential_model(
    h: np.ndarray, nugget: float, sill: float, range_param: float
) -> np.ndarray:
    """Exponential variogram model."""
    return nugget + (sill - nugget) * (1 - np.exp(-np.asarray(h) / range_param))


def _gaussian_model(
    h: np.ndarray, nugget: float, sill: float, range_param: float
) -> np.ndarray:
    """Gaussian variogram model."""
    h = np.asarray(h)
    return nugget + (sill - nugget) * (1 - np.exp(-(h**2) / (range_param**2)))


# Model registry
VARIOGRAM_MODELS: dict[str, Callable] = {
    "spherical": _spherical_model,
    "exponential": _exponential_model,
    "gaussian": _gaussian_model,
}


def compute_experimental_variogram(
    points: Union[PointSet, np.ndarray],
    values: np.ndarray,
    n_lags: int = 15,
    max_lag: Optional[float] = None,
    lag_tolerance: float = 0.5,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Compute experimental semi-variogram from sample points.

    Args:
        points: PointSet or (n, 2) array with sample locations.
        values: Sample values (n_samples,).
        n_lags: Number of lag bins.
        max_lag: Maximum lag distance (default: half of max distance).
        lag_tolerance: Tolerance for binning (fraction of lag width).

    Returns:
        Tuple of (lags, semi_variance, n_pairs) for each non-empty bin.

    Raises:
        ValueError: If inputs are invalid.
    """
    coordinates = points.coordinates if isinstance(points, PointSet) else np.asarray(points)
    values = np.asarray(values, dtype=np.float64)

    if len(coordinates) != len(values):
        raise ValueError(
            f"Coordinates ({len(coordinates)}) and values ({len(values)}) "
            f"must have same length"
        )

    if len(values) < 10:
        raise ValueError(f"Need at least 10 samples for variogram, got {len(values)}")

    distances = pdist(coordinates)
    if max_lag is None:
        max_lag = distances.max() / 2.0
    if not max_lag > 0:
        raise ValueError(f"max_lag must be positive, got {max_lag}")

    lag_width = max_lag / n_lags
    lag_bins = np.linspace(0, max_lag, n_lags + 1)
    lag_centers = (lag_bins[:-1] + lag_bins[1:]) / 2
    tolerance = lag_tolerance * lag_width

    value_diffs = pdist(values.reshape(-1, 1))
    semi_variance_pairs = 0.5 * value_diffs**2

    lags = []
    semi_variances = []
    n_pairs_list = []

    for i in range(n_lags):
        lag_min = lag_bins[i]
        lag_max = lag_bins[i + 1]
        mask = (distances >= lag_min - tolerance) & (distances < lag_max + tolerance)

        if np.sum(mask) > 0:
            lags.append(lag_centers[i])
            semi_variances.append(np.mean(semi_variance_pairs[mask]))
            n_pairs_list.append(np.sum(mask))

    return np.array(lags), np.array(semi_variances), np.array(n_pairs_list)


def fit_variogram_model(
    lags: np.ndarray,
    semi_variances: np.ndarray,
    model_type: str = "spherical",
    initial_params: Optional[dict] = None,
) -> VariogramModel:
    """Fit theoretical variogram model to experimental data.

    Falls back to the initial guesses when least squares does not converge.

    Args:
        lags: Lag distances.
        semi_variances: Experimental semi-variances.
        model_type: Model type ('spherical', 'exponential', 'gaussian').
        initial_params: Optional initial parameter guesses ('nugget', 'sill',
            'range').

    Returns:
        Fitted VariogramModel.

    Raises:
        ValueError: If model_type is invalid or there are too few lags.
    """
    if model_type not in VARIOGRAM_MODELS:
        raise ValueError(
            f"Unknown model_type: {model_type}. "
            f"Must be one of {list(VARIOGRAM_MODELS.keys())}"
        )

    if len(lags) < 3:
        raise ValueError(f"Need at least 3 lag bins, got {len(lags)}")

    model_func = VARIOGRAM_MODELS[model_type]
    initial_params = initial_params or {}

    nugget_guess = float(initial_params.get("nugget", max(semi_variances[0], 0.0)))
    sill_guess = float(initial_params.get("sill", np.max(semi_variances)))
    range_guess = float(initial_params.get("range", lags[-1] / 2.0))
    nugget_guess = min(nugget_guess, sill_guess)

    try:
        popt, _ = curve_fit(
            model_func,
            lags,
            semi_variances,
            p0=[nugget_guess, sill_guess, range_guess],
            bounds=([0, 0, 1e-12], [max(sill_guess, 1e-12), np.inf, np.inf]),
        )
        nugget, sill, range_param = (float(v) for v in popt)
        sill = max(sill, nugget)
    except (RuntimeError, ValueError) as e:
        logger.warning(f"Variogram fit failed ({e}); using initial guesses")
        nugget, sill, range_param = nugget_guess, sill_guess, range_guess
    partial_sill = sill - nugget

    predicted = model_func(lags, nugget, sill, range_param)
    ss_res = np.sum((semi_variances - predicted) ** 2)
    ss_tot = np.sum((semi_variances - np.mean(semi_variances)) ** 2)
    r_squared = 1 - (ss_res / ss_tot) if ss_tot > 0 else 0.0

    return VariogramModel(
        model_type=model_type,
        nugget=nugget,
        sill=sill,
        range_param=range_param,
        partial_sill=partial_sill,
        r_squared=float(r_squared),
    )


def predict_variogram(
    variogram_model: VariogramModel, distances: np.ndarray
) -> np.ndarray:
    """Predict variogram values at given distances."""
    model_func = VARIOGRAM_MODELS[variogram_model.model_type]
    return model_func(
        distances,
        variogram_model.nugget,
        variogram_model.sill,
        variogram_model.range_param,
    )


def effective_range(variogram_model: VariogramModel, threshold: float = 0.05) -> float:
    """Distance at which the structured correlation drops to ``threshold``.

    The structured correlation at lag h is
    ``1 - (gamma(h) - nugget) / partial_sill``. A model without structured
    variance (pure nugget) has an effective range of zero.

    Args:
        variogram_model: Fitted model.
        threshold: Remaining correlation, in [0, 1). Zero is only reachable by
            the spherical model.

    Returns:
        Effective range in coordinate units.
    """
    if not 0.0 <= threshold < 1.0:
        raise ValueError(f"threshold must lie in [0, 1), got {threshold}")
    if variogram_model.partial_sill <= 0:
        return 0.0

    a = variogram_model.range_param
    if variogram_model.model_type == "spherical":
        if threshold == 0.0:
            return float(a)
        # 1 - 1.5 s + 0.5 s^3 decreases monotonically from 1 to 0 on [0, 1].
        s = brentq(lambda s: 1 - 1.5 * s + 0.5 * s**3 - threshold, 0.0, 1.0)
        return float(s * a)
    if threshold == 0.0:
        raise ValueError(
            f"{variogram_model.model_type} correlation never reaches zero; "
            f"use a positive threshold"
        )
    if variogram_model.model_type == "exponential":
        return float(-a * np.log(threshold))
    return float(a * np.sqrt(-np.log(threshold)))
