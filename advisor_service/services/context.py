"""Context snapshot handed to the completion provider.

Every figure is rendered with its unit here; the model narrates numbers,
it never computes them.
"""
from __future__ import annotations

from ..api.schemas import (
    AnalyticsSnapshot,
    NewsItem,
    PersonalizationProfile,
    PortfolioSnapshot,
)

TOP_HOLDINGS_LIMIT = 8
CONCENTRATION_ALERT_PCT = 10.0

_SCENARIO_LABELS = {
    "rate_cut": "Rate cut (-50bps)",
    "rate_hike": "Rate hike (+50bps)",
    "equity_crash": "Equity crash (-20%)",
    "usd_depreciation": "USD depreciation (-10%)",
}

_EXPERIENCE_LABELS = {
    "beginner": "Beginner (less than 2 years)",
    "intermediate": "Intermediate (2-10 years)",
    "advanced": "Advanced (10+ years)",
}

_HORIZON_LABELS = {
    "<1y": "Short-term (less than 1 year)",
    "1-3y": "Short to medium-term (1-3 years)",
    "3-7y": "Medium-term (3-7 years)",
    "7y+": "Long-term (7+ years)",
}

_RISK_LABELS = {
    "low": "Low risk tolerance (capital preservation)",
    "medium": "Medium risk tolerance (balanced growth)",
    "high": "High risk tolerance (aggressive growth)",
}

_GOAL_LABELS = {
    "preserve": "Capital preservation",
    "grow": "Wealth growth",
    "income": "Income generation",
    "balanced": "Balanced approach",
}

_STYLE_LABELS = {
    "concise": "Brief, to the point",
    "standard": "Standard explanations",
    "detailed": "Detailed, comprehensive",
}

_PRIORITY_LABELS = {
    "risk": "Risk management",
    "opportunities": "Growth opportunities",
    "education": "Learning and education",
}

_EXPERIENCE_DIRECTIVES = {
    "beginner": [
        "Explain concepts clearly without assuming prior knowledge",
        "Use analogies and examples to illustrate complex ideas",
        "Define technical terms when you must use them",
    ],
    "advanced": [
        "Use technical terminology freely",
        "Focus on nuanced analysis and advanced strategies",
        "Skip basic explanations",
    ],
}

_STYLE_DIRECTIVES = {
    "concise": [
        "Keep answers brief and scannable",
        "Lead with the key insight in the first sentence",
        "Use bullet points for multiple items",
    ],
    "detailed": [
        "Provide comprehensive analysis with supporting rationale",
        "Include context and background where helpful",
        "Walk through the reasoning step by step",
    ],
}

_PRIORITY_DIRECTIVES = {
    "risk": [
        "Emphasize downside protection and risk mitigation",
        "Highlight potential vulnerabilities in the portfolio",
    ],
    "opportunities": [
        "Focus on growth potential and opportunities",
        "Highlight undervalued or high-potential positions",
    ],
    "education": [
        "Include educational context and explanations",
        'Help the client understand the "why" behind advice',
    ],
}


def _fmt_money(val, currency: str = "€") -> str:
    if not isinstance(val, (int, float)) or isinstance(val, bool):
        return "N/A"
    sign = "-" if val < 0 else ""
    return f"{sign}{currency}{abs(float(val)):,.2f}"

def _fmt_pct(val, precision: int = 1, signed: bool = False) -> str:
    if not isinstance(val, (int, float)) or isinstance(val, bool):
        return "N/A"
    spec = f"+.{precision}f" if signed else f".{precision}f"
    return f"{float(val):{spec}}%"


def _portfolio_sections(p: PortfolioSnapshot, currency: str) -> list[str]:
    lines = [
        "## CLIENT PORTFOLIO SNAPSHOT",
        f"**Account:** {p.name or 'Primary Portfolio'}",
        f"**Risk Profile:** {p.profile or 'Not specified'}",
        f"**Total AUM:** {_fmt_money(p.total_value_eur, currency)}",
        f"**Unrealized P&L:** {_fmt_money(p.total_pnl_eur, currency)} "
        f"({_fmt_pct(p.total_pnl_percent or 0.0, signed=True)})",
        f"**Position Count:** {p.position_count if p.position_count is not None else 'N/A'}",
    ]
    sections = ["\n".join(lines)]
    if not p.positions:
        return sections

    ranked = sorted(p.positions, key=lambda pos: pos.weight_percent, reverse=True)
    holdings = ["## TOP HOLDINGS"]
    for pos in ranked[:TOP_HOLDINGS_LIMIT]:
        holdings.append(
            f"  {pos.ticker}: {_fmt_pct(pos.weight_percent)} "
            f"({_fmt_money(pos.market_value_eur, currency)}, "
            f"{_fmt_pct(pos.pnl_percent or 0.0, signed=True)} P&L)"
        )
    sections.append("\n".join(holdings))

    concentrated = [pos for pos in p.positions if pos.weight_percent > CONCENTRATION_ALERT_PCT]
    if concentrated:
        listed = ", ".join(f"{pos.ticker} at {_fmt_pct(pos.weight_percent)}" for pos in concentrated)
        sections.append(
            f"## CONCENTRATION ALERTS\n  Positions exceeding {CONCENTRATION_ALERT_PCT:.0f}%: {listed}"
        )
    return sections


def _allocation_section(title: str, rows: list[tuple[str, float]]) -> str | None:
    if not rows:
        return None
    lines = [f"## {title}"]
    lines.extend(f"- {label}: {_fmt_pct(weight)}" for label, weight in rows)
    return "\n".join(lines)


def _scenario_lines(scenarios, currency: str) -> list[str]:
    if isinstance(scenarios, list):
        named = [(s.name, s) for s in scenarios]
    else:
        named = [
            (_SCENARIO_LABELS.get(key, key.replace("_", " ").capitalize()), impact)
            for key, impact in scenarios.items()
        ]
    return [
        f"- {name}: {_fmt_pct(impact.impact_percent, signed=True)} "
        f"({_fmt_money(impact.impact_eur, currency)})"
        for name, impact in named
    ]


def _analytics_sections(a: AnalyticsSnapshot, currency: str) -> list[str]:
    sections: list[str | None] = []
    if a.concentration:
        sections.append(
            "## CONCENTRATION ANALYSIS\n"
            f"- Top 1 position: {_fmt_pct(a.concentration.top1_weight)} of portfolio\n"
            f"- Top 5 positions: {_fmt_pct(a.concentration.top5_weight)} of portfolio"
        )
    sections.append(_allocation_section(
        "ASSET ALLOCATION",
        [(row.category, row.weight_percent) for row in a.allocations_by_asset_class],
    ))
    if a.fx_exposure:
        currency_rows = [(row.currency, row.weight_percent) for row in a.fx_exposure]
    else:
        currency_rows = [(row.category, row.weight_percent) for row in a.allocations_by_currency]
    sections.append(_allocation_section("CURRENCY EXPOSURE", currency_rows))
    sections.append(_allocation_section(
        "GEOGRAPHIC EXPOSURE",
        [(row.category, row.weight_percent) for row in a.allocations_by_region],
    ))
    if a.flags:
        lines = ["## ACTIVE RISK FLAGS"]
        lines.extend(f"  [{flag.severity.upper()}] {flag.title}" for flag in a.flags)
        sections.append("\n".join(lines))
    if a.scenarios:
        lines = ["## SCENARIO SENSITIVITIES"]
        lines.extend(_scenario_lines(a.scenarios, currency))
        sections.append("\n".join(lines))
    return [s for s in sections if s]


def _news_section(n: NewsItem) -> str:
    lines = [
        "## NEWS CONTEXT FOR ANALYSIS",
        f"**Headline:** {n.title or 'N/A'}",
        f"**Source:** {n.source or 'N/A'}",
        f"**Summary:** {n.summary or 'N/A'}",
    ]
    if n.published_at:
        lines.append(f"**Published:** {n.published_at}")
    if n.tags:
        lines.append(f"**Tags:** {', '.join(n.tags)}")
    lines.append("")
    lines.append(
        "IMPORTANT: Analyze this news specifically in the context of the client's holdings above. "
        "Identify which positions are directly affected and describe the potential impact using "
        "the figures provided."
    )
    return "\n".join(lines)


def _profile_section(p: PersonalizationProfile) -> str:
    lines = ["## CLIENT PROFILE FOR PERSONALIZATION"]
    if p.display_name:
        lines.append(f"**Name:** {p.display_name}")
    if p.investing_experience:
        lines.append(f"**Experience Level:** {_EXPERIENCE_LABELS[p.investing_experience]}")
    if p.investment_horizon:
        lines.append(f"**Investment Horizon:** {_HORIZON_LABELS[p.investment_horizon]}")
    if p.risk_comfort:
        lines.append(f"**Risk Comfort:** {_RISK_LABELS[p.risk_comfort]}")
    if p.goals:
        lines.append(f"**Investment Goals:** {', '.join(_GOAL_LABELS[g] for g in p.goals)}")
    if p.answer_style:
        lines.append(f"**Preferred Answer Style:** {_STYLE_LABELS[p.answer_style]}")
    if p.content_priority:
        lines.append(f"**Primary Focus:** {_PRIORITY_LABELS[p.content_priority]}")
    if p.avoid_jargon:
        lines.append("**Communication Preference:** Avoid technical jargon, use plain language")

    lines.append("")
    lines.append("ADAPT YOUR RESPONSES to match this client profile:")
    directives = (
        _EXPERIENCE_DIRECTIVES.get(p.investing_experience or "", [])
        + _STYLE_DIRECTIVES.get(p.answer_style or "", [])
        + _PRIORITY_DIRECTIVES.get(p.content_priority or "", [])
    )
    lines.extend(f"- {d}" for d in directives)
    return "\n".join(lines)


def assemble_context(
    portfolio: PortfolioSnapshot | None = None,
    analytics: AnalyticsSnapshot | None = None,
    news: NewsItem | None = None,
    profile: PersonalizationProfile | None = None,
    currency: str = "€",
) -> str:
    """Render the caller's snapshot as a bounded, fixed-order text block.

    Sections whose source input is absent are left out entirely.
    """
    sections: list[str] = []
    if portfolio is not None:
        sections.extend(_portfolio_sections(portfolio, currency))
    if analytics is not None:
        sections.extend(_analytics_sections(analytics, currency))
    if news is not None:
        sections.append(_news_section(news))
    if profile is not None:
        sections.append(_profile_section(profile))
    return "\n\n".join(sections)
