"""
Tests for Timer / timed and the timing recorded on fitted results.
"""

import numpy as np
import pytest

from pysurvstats.core.compute import COX_DEFAULTS, Timer, timed
from pysurvstats.survival import coxph, survreg


class TestTimer:

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        with timer.section('newton_raphson'):
            pass
        with timer.section('newton_raphson'):
            pass
        timer.stop()
        result = timer.result()
        assert set(result) == {'total_seconds', 'newton_raphson'}
        assert result['total_seconds'] >= 0.0
        assert result['newton_raphson'] >= 0.0

    def test_section_recorded_on_error(self):
        timer = Timer()
        timer.start()
        with pytest.raises(ZeroDivisionError):
            with timer.section('fit'):
                1 / 0
        timer.stop()
        assert 'fit' in timer.result()

    def test_stop_before_start(self):
        with pytest.raises(RuntimeError, match="before start"):
            Timer().stop()

    def test_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError, match="before stop"):
            timer.result()

    def test_timed_context(self):
        with timed() as timer:
            pass
        assert timer.result()['total_seconds'] >= 0.0


class TestOptimizerSettings:

    def test_overrides(self):
        custom = COX_DEFAULTS.with_overrides(tol=1e-6)
        assert custom.tol == 1e-6
        assert custom.max_iter == COX_DEFAULTS.max_iter
        assert COX_DEFAULTS.tol == 1e-9

    def test_no_overrides_is_equal(self):
        assert COX_DEFAULTS.with_overrides() == COX_DEFAULTS

    def test_frozen(self):
        with pytest.raises(AttributeError):
            COX_DEFAULTS.tol = 1.0


class TestSolverTiming:

    def test_fits_record_newton_section(self):
        rng = np.random.default_rng(0)
        x = rng.standard_normal((80, 1))
        time = rng.exponential(np.exp(-0.5 * x.ravel()))
        event = np.ones(80)
        for fit in (coxph(time, event, x), survreg(time, event, x)):
            assert set(fit.timing) == {'total_seconds', 'newton_raphson'}
            assert fit.timing['newton_raphson'] <= fit.timing['total_seconds']
