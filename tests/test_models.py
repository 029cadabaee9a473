"""Tests for ticker normalization, profiles and cache key fingerprints."""

import itertools
import unittest

from aurora.domain.models import (
    AnalysisOutcome,
    AnalysisResult,
    InvestmentHorizon,
    InvestmentObjective,
    RiskTolerance,
    UserProfile,
    build_cache_key,
    normalize_ticker,
)


class TestNormalizeTicker(unittest.TestCase):

    def test_trims_and_uppercases(self):
        self.assertEqual(normalize_ticker("  aapl "), "AAPL")

    def test_empty_and_none(self):
        self.assertEqual(normalize_ticker(""), "")
        self.assertEqual(normalize_ticker(None), "")


class TestUserProfile(unittest.TestCase):

    def test_from_strings(self):
        profile = UserProfile.from_strings("High", " 10+ ", "INCOME")
        self.assertEqual(profile.risk_tolerance, RiskTolerance.HIGH)
        self.assertEqual(profile.horizon, InvestmentHorizon.LONG)
        self.assertEqual(profile.objective, InvestmentObjective.INCOME)

    def test_from_strings_rejects_unknown(self):
        with self.assertRaises(ValueError):
            UserProfile.from_strings("reckless", "1-3", "growth")


class TestCacheKey(unittest.TestCase):

    def setUp(self):
        self.profile = UserProfile(
            RiskTolerance.MODERATE, InvestmentHorizon.MEDIUM, InvestmentObjective.GROWTH
        )

    def test_format(self):
        self.assertEqual(build_cache_key(" aapl", self.profile), "AAPL::moderate|5-10|growth")

    def test_stable_for_same_inputs(self):
        self.assertEqual(
            build_cache_key("msft", self.profile),
            build_cache_key("MSFT ", UserProfile.from_strings("moderate", "5-10", "growth")),
        )

    def test_distinct_for_every_profile(self):
        profiles = [
            UserProfile(risk, horizon, objective)
            for risk, horizon, objective in itertools.product(
                RiskTolerance, InvestmentHorizon, InvestmentObjective
            )
        ]
        keys = {build_cache_key("AAPL", profile) for profile in profiles}
        self.assertEqual(len(keys), len(profiles))

    def test_distinct_for_each_single_field_change(self):
        base = build_cache_key("AAPL", self.profile)
        variants = [
            UserProfile(RiskTolerance.LOW, self.profile.horizon, self.profile.objective),
            UserProfile(self.profile.risk_tolerance, InvestmentHorizon.LONG, self.profile.objective),
            UserProfile(self.profile.risk_tolerance, self.profile.horizon, InvestmentObjective.INCOME),
        ]
        for variant in variants:
            self.assertNotEqual(build_cache_key("AAPL", variant), base)


class TestAnalysisOutcome(unittest.TestCase):

    def test_ok_requires_result_and_no_error(self):
        result = AnalysisResult("AAPL", "view", 5, 60, "hold")
        self.assertTrue(AnalysisOutcome("AAPL", "k", result=result).ok)
        self.assertFalse(AnalysisOutcome("AAPL", "k").ok)


if __name__ == "__main__":
    unittest.main()
