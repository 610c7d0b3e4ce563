"""Tests for variogram primitives and effective range."""

import numpy as np
import pytest

from foldsmith.objects import PointSet
from foldsmith.primitives.variogram import (
    VariogramModel,
    compute_experimental_variogram,
    effective_range,
    fit_variogram_model,
    predict_variogram,
)


def make_model(model_type="spherical", nugget=0.0, sill=1.0, range_param=10.0):
    return VariogramModel(
        model_type=model_type,
        nugget=nugget,
        sill=sill,
        range_param=range_param,
        partial_sill=sill - nugget,
        r_squared=1.0,
    )


class TestExperimentalVariogram:
    """Tests for compute_experimental_variogram."""

    def test_needs_ten_samples(self):
        """Test that fewer than 10 samples are rejected."""
        coords = np.random.default_rng(0).uniform(0, 10, size=(9, 2))
        with pytest.raises(ValueError, match="at least 10"):
            compute_experimental_variogram(coords, np.arange(9.0))

    def test_length_mismatch(self):
        """Test that coordinates and values must align."""
        with pytest.raises(ValueError):
            compute_experimental_variogram(np.zeros((12, 2)), np.zeros(11))

    def test_accepts_pointset(self, random_points):
        """Test PointSet input and output shapes."""
        lags, gamma, n_pairs = compute_experimental_variogram(
            random_points, random_points.features[:, 0], n_lags=10
        )
        assert len(lags) == len(gamma) == len(n_pairs)
        assert 0 < len(lags) <= 10
        assert np.all(np.diff(lags) > 0)
        assert np.all(gamma >= 0)
        assert np.all(n_pairs > 0)

    def test_trend_increases_with_lag(self):
        """Test that a linear trend gives growing semi-variance."""
        rng = np.random.default_rng(1)
        coords = rng.uniform(0, 100, size=(150, 2))
        _, gamma, _ = compute_experimental_variogram(coords, coords[:, 0], n_lags=8)
        assert gamma[-1] > gamma[0]


class TestVariogramFit:
    """Tests for fit_variogram_model."""

    @pytest.mark.parametrize("model_type", ["spherical", "exponential", "gaussian"])
    def test_recovers_synthetic_model(self, model_type):
        """Test fitting noiseless model values."""
        truth = make_model(model_type, nugget=0.1, sill=1.1, range_param=20.0)
        lags = np.linspace(1.0, 60.0, 25)
        gamma = predict_variogram(truth, lags)
        model = fit_variogram_model(
            lags, gamma, model_type=model_type,
            initial_params={"nugget": 0.1, "sill": 1.0, "range": 15.0},
        )
        assert model.model_type == model_type
        assert model.r_squared > 0.95
        assert model.sill == pytest.approx(1.1, rel=0.1)

    def test_too_few_lags(self):
        """Test that fewer than three lags cannot be fitted."""
        with pytest.raises(ValueError):
            fit_variogram_model(np.array([1.0, 2.0]), np.array([0.1, 0.2]))

    def test_unknown_model(self):
        """Test that unknown model types are rejected."""
        with pytest.raises(ValueError, match="Unknown model_type"):
            fit_variogram_model(np.arange(1.0, 5.0), np.arange(4.0), model_type="cubic")

    def test_model_validation(self):
        """Test VariogramModel parameter checks."""
        with pytest.raises(ValueError):
            make_model(nugget=-1.0)
        with pytest.raises(ValueError):
            make_model(nugget=2.0, sill=1.0)
        with pytest.raises(ValueError):
            make_model(range_param=0.0)


class TestEffectiveRange:
    """Tests for effective_range."""

    def test_exponential(self):
        """Test -a ln(t) for the exponential model."""
        model = make_model("exponential", range_param=10.0)
        assert effective_range(model, 0.05) == pytest.approx(-10.0 * np.log(0.05))

    def test_gaussian(self):
        """Test a sqrt(-ln t) for the gaussian model."""
        model = make_model("gaussian", range_param=10.0)
        assert effective_range(model, 0.05) == pytest.approx(10.0 * np.sqrt(-np.log(0.05)))

    def test_spherical_zero_threshold(self):
        """Test that zero remaining correlation is the range parameter."""
        assert effective_range(make_model("spherical", range_param=12.0), 0.0) == 12.0

    def test_spherical_threshold(self):
        """Test that the model correlation equals the threshold at the range."""
        model = make_model("spherical", nugget=0.2, sill=1.2, range_param=30.0)
        distance = effective_range(model, 0.05)
        assert 0 < distance < 30.0
        gamma = predict_variogram(model, np.array([distance]))[0]
        correlation = 1 - (gamma - model.nugget) / model.partial_sill
        assert correlation == pytest.approx(0.05, abs=1e-9)

    def test_pure_nugget(self):
        """Test that a model without structure has zero range."""
        assert effective_range(make_model(nugget=1.0, sill=1.0), 0.05) == 0.0

    def test_invalid_threshold(self):
        """Test threshold validation."""
        with pytest.raises(ValueError):
            effective_range(make_model(), 1.0)
        with pytest.raises(ValueError):
            effective_range(make_model("exponential"), 0.0)
