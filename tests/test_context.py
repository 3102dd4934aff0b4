import unittest

from advisor_service.api.schemas import (
    AnalyticsSnapshot,
    NewsItem,
    PersonalizationProfile,
    PortfolioSnapshot,
)
from advisor_service.services.context import assemble_context


def _portfolio(n_positions=10):
    weights = [30.0, 15.0, 12.0, 9.0, 8.0, 7.0, 6.0, 5.0, 4.5, 3.5][:n_positions]
    return PortfolioSnapshot.model_validate({
        "name": "Growth",
        "total_value_eur": 250000.0,
        "total_pnl_eur": -1250.5,
        "total_pnl_percent": -0.5,
        "position_count": n_positions,
        # Deliberately unsorted.
        "positions": [
            {
                "ticker": f"T{i}",
                "name": f"Ticker {i}",
                "weight_percent": w,
                "market_value_eur": w * 2500,
                "pnl_percent": 1.0,
            }
            for i, w in reversed(list(enumerate(weights)))
        ],
    })


def _analytics():
    return AnalyticsSnapshot.model_validate({
        "concentration": {"top1_weight": 30.0, "top5_weight": 74.0, "top10_weight": 100.0},
        "allocations_by_asset_class": [{"category": "Equity", "weight_percent": 80.0}],
        "allocations_by_currency": [{"category": "USD", "weight_percent": 60.0}],
        "allocations_by_region": [{"category": "North America", "weight_percent": 55.0}],
        "flags": [{"title": "Single stock above 25%", "severity": "high", "explanation": "x"}],
        "scenarios": [{"name": "Equity crash", "impact_percent": -16.0, "impact_eur": -40000.0}],
    })


class ContextAssemblerTests(unittest.TestCase):
    def test_empty_inputs_produce_no_sections(self):
        self.assertEqual(assemble_context(), "")

    def test_section_order_is_fixed(self):
        text = assemble_context(
            _portfolio(),
            _analytics(),
            NewsItem(title="Fed holds rates", source="Reuters", summary="No change", tags=["rates"]),
            PersonalizationProfile(display_name="Ana", investing_experience="beginner"),
        )
        headers = [
            "## CLIENT PORTFOLIO SNAPSHOT",
            "## TOP HOLDINGS",
            "## CONCENTRATION ALERTS",
            "## CONCENTRATION ANALYSIS",
            "## ASSET ALLOCATION",
            "## CURRENCY EXPOSURE",
            "## GEOGRAPHIC EXPOSURE",
            "## ACTIVE RISK FLAGS",
            "## SCENARIO SENSITIVITIES",
            "## NEWS CONTEXT FOR ANALYSIS",
            "## CLIENT PROFILE FOR PERSONALIZATION",
        ]
        positions = [text.index(h) for h in headers]
        self.assertEqual(positions, sorted(positions))

    def test_top_holdings_capped_at_eight_and_sorted(self):
        text = assemble_context(_portfolio())
        holdings = text.split("## TOP HOLDINGS")[1].split("##")[0].strip().splitlines()
        self.assertEqual(len(holdings), 8)
        self.assertTrue(holdings[0].strip().startswith("T0: 30.0%"))
        self.assertTrue(holdings[-1].strip().startswith("T7: 5.0%"))
        self.assertNotIn("T8:", text)

    def test_numbers_carry_units(self):
        text = assemble_context(_portfolio(), _analytics())
        self.assertIn("**Total AUM:** €250,000.00", text)
        self.assertIn("**Unrealized P&L:** -€1,250.50 (-0.5%)", text)
        self.assertIn("T0: 30.0% (€75,000.00, +1.0% P&L)", text)
        self.assertIn("- Top 5 positions: 74.0% of portfolio", text)
        self.assertIn("- Equity crash: -16.0% (-€40,000.00)", text)

    def test_currency_symbol_is_configurable(self):
        text = assemble_context(_portfolio(1), currency="$")
        self.assertIn("**Total AUM:** $250,000.00", text)

    def test_concentration_alerts_only_when_above_ten_percent(self):
        text = assemble_context(_portfolio())
        self.assertIn("Positions exceeding 10%: T2 at 12.0%, T1 at 15.0%, T0 at 30.0%", text)
        calm = PortfolioSnapshot.model_validate({
            "positions": [{"ticker": "A", "weight_percent": 10.0, "market_value_eur": 1.0}],
        })
        self.assertNotIn("CONCENTRATION ALERTS", assemble_context(calm))

    def test_absent_inputs_omit_their_sections(self):
        text = assemble_context(_portfolio())
        for header in ("CONCENTRATION ANALYSIS", "ASSET ALLOCATION", "NEWS CONTEXT", "CLIENT PROFILE"):
            self.assertNotIn(header, text)
        analytics_only = assemble_context(analytics=AnalyticsSnapshot())
        self.assertEqual(analytics_only, "")

    def test_fx_exposure_takes_precedence(self):
        analytics = AnalyticsSnapshot.model_validate({
            "allocations_by_currency": [{"category": "USD", "weight_percent": 60.0}],
            "fx_exposure": [{"currency": "JPY", "weight_percent": 12.5}],
        })
        text = assemble_context(analytics=analytics)
        self.assertIn("- JPY: 12.5%", text)
        self.assertNotIn("USD", text)

    def test_keyed_scenarios_use_fixed_labels(self):
        analytics = AnalyticsSnapshot.model_validate({
            "scenarios": {
                "rate_hike": {"impact_percent": -2.0, "impact_eur": -5000.0},
                "oil_shock": {"impact_percent": 1.5, "impact_eur": 3750.0},
            }
        })
        text = assemble_context(analytics=analytics)
        self.assertIn("- Rate hike (+50bps): -2.0% (-€5,000.00)", text)
        self.assertIn("- Oil shock: +1.5% (€3,750.00)", text)

    def test_risk_flags_show_severity(self):
        text = assemble_context(analytics=_analytics())
        self.assertIn("[HIGH] Single stock above 25%", text)

    def test_profile_directives(self):
        profile = PersonalizationProfile.model_validate({
            "displayName": "Ana",
            "investingExperience": "advanced",
            "answerStyle": "concise",
            "contentPriority": "opportunities",
            "avoidJargon": True,
            "goals": ["grow", "income"],
        })
        text = assemble_context(profile=profile)
        self.assertIn("**Name:** Ana", text)
        self.assertIn("**Experience Level:** Advanced (10+ years)", text)
        self.assertIn("**Investment Goals:** Wealth growth, Income generation", text)
        self.assertIn("Avoid technical jargon", text)
        self.assertIn("- Use technical terminology freely", text)
        self.assertIn("- Keep answers brief and scannable", text)
        self.assertIn("- Focus on growth potential and opportunities", text)

    def test_pure_function(self):
        portfolio = _portfolio()
        before = portfolio.model_dump()
        self.assertEqual(assemble_context(portfolio), assemble_context(portfolio))
        self.assertEqual(portfolio.model_dump(), before)


if __name__ == "__main__":
    unittest.main()
