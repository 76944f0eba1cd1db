"""
Unit tests for the consumption guard
"""

import pytest

from newsreel_eval.evaluation.consumption import ConsumptionGuard


class TestConsumptionGuard:
    """Single-use bookkeeping"""

    def test_mark_and_check(self):
        guard = ConsumptionGuard()

        assert guard.is_consumed(7) is False
        guard.mark_consumed(7)

        assert guard.is_consumed(7) is True
        assert 7 in guard
        assert len(guard) == 1

    def test_double_consumption_is_rejected(self):
        guard = ConsumptionGuard()
        guard.mark_consumed(7)

        with pytest.raises(ValueError):
            guard.mark_consumed(7)

        assert guard.total_consumed == 1

    def test_forget(self):
        guard = ConsumptionGuard()
        guard.mark_consumed(1)
        guard.mark_consumed(2)

        guard.forget(1)
        guard.forget(99)  # unknown ids are ignored

        assert len(guard) == 1
        assert guard.is_consumed(1) is False
        assert guard.total_consumed == 2

    def test_clear(self):
        guard = ConsumptionGuard()
        guard.mark_consumed(1)
        guard.clear()

        assert len(guard) == 0
