#!/usr/bin/env python3
"""
Unit tests for the Pengo induction nomogram
"""

import pytest
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from anticoag_engine.errors import InvalidInputError
from anticoag_engine.nomogram import PENGO_TABLE, PengoNomogram

class TestPengoNomogram:
    """Weekly estimate and clinical rounding"""

    def setup_method(self):
        self.nomogram = PengoNomogram()

    @pytest.mark.parametrize("inr,expected", [
        (1.0, 71.0),
        (2.0, 26.0),
        (2.9, 16.5),
        (4.4, 7.0),
        (1.05, 64.0),
        (2.45, 20.5),
    ])
    def test_estimated_weekly_dose(self, inr, expected):
        assert self.nomogram.estimated_weekly_dose(inr) == expected

    def test_clamped_outside_table(self):
        assert self.nomogram.estimated_weekly_dose(0.8) == 71.0
        assert self.nomogram.estimated_weekly_dose(5.0) == 7.0
        assert not self.nomogram.in_range(5.0)

    def test_table_is_monotonic(self):
        doses = [dose for _, dose in PENGO_TABLE]
        assert doses == sorted(doses, reverse=True)
        assert len(PENGO_TABLE) == 35

    def test_rounds_up_by_default(self):
        assert self.nomogram.clinical_rounding(26.0, age=60, has_bled=1, inr=2.0) == 27.5

    @pytest.mark.parametrize("age,has_bled,inr", [(80, 0, 2.0), (60, 3, 2.0), (60, 0, 2.6)])
    def test_rounds_down_for_risk_factors(self, age, has_bled, inr):
        assert self.nomogram.clinical_rounding(26.0, age=age, has_bled=has_bled, inr=inr) == 25.0

    def test_exact_multiple_unchanged(self):
        assert self.nomogram.clinical_rounding(25.0, age=60, has_bled=0, inr=2.0) == 25.0

    def test_estimate(self):
        estimate = self.nomogram.estimate(2.0, age=68, has_bled=1)

        assert estimate.estimated_weekly_dose == 26.0
        assert estimate.suggested_weekly_dose == 27.5
        assert not estimate.rounded_down
        assert estimate.in_nomogram_range

    def test_invalid_inputs(self):
        with pytest.raises(InvalidInputError):
            self.nomogram.estimated_weekly_dose(0.0)
        with pytest.raises(InvalidInputError):
            self.nomogram.clinical_rounding(26.0, age=-1, has_bled=0, inr=2.0)
