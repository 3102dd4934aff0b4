from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Literal

class ChatMessage(BaseModel):
    role: Literal['user', 'assistant']
    content: str

class Position(BaseModel):
    ticker: str
    name: str = ''
    weight_percent: float
    market_value_eur: float
    pnl_eur: Optional[float] = None
    pnl_percent: Optional[float] = None
    asset_class: Optional[str] = None
    currency: Optional[str] = None
    region: Optional[str] = None

class PortfolioSnapshot(BaseModel):
    name: Optional[str] = None
    profile: Optional[str] = None
    total_value_eur: Optional[float] = None
    total_pnl_eur: Optional[float] = None
    total_pnl_percent: Optional[float] = None
    position_count: Optional[int] = None
    positions: list[Position] = Field(default_factory=list)

class TopPosition(BaseModel):
    ticker: str
    name: str = ''
    weight_percent: float

class Concentration(BaseModel):
    top1_weight: Optional[float] = None
    top5_weight: Optional[float] = None
    top10_weight: Optional[float] = None
    top_positions: list[TopPosition] = Field(default_factory=list)

class Allocation(BaseModel):
    category: str
    weight_percent: float

class FxExposure(BaseModel):
    currency: str
    weight_percent: float

class RiskFlag(BaseModel):
    title: str
    severity: str
    explanation: str = ''
    recommendation: Optional[str] = None

class ScenarioImpact(BaseModel):
    impact_percent: float
    impact_eur: float

class Scenario(ScenarioImpact):
    name: str
    description: Optional[str] = None

class AnalyticsSnapshot(BaseModel):
    concentration: Optional[Concentration] = None
    allocations_by_asset_class: list[Allocation] = Field(default_factory=list)
    allocations_by_currency: list[Allocation] = Field(default_factory=list)
    allocations_by_region: list[Allocation] = Field(default_factory=list)
    fx_exposure: list[FxExposure] = Field(default_factory=list)
    flags: list[RiskFlag] = Field(default_factory=list)
    # Either a named list or a mapping of scenario key -> impact.
    scenarios: list[Scenario] | dict[str, ScenarioImpact] | None = None

class NewsItem(BaseModel):
    title: Optional[str] = None
    summary: Optional[str] = None
    source: Optional[str] = None
    published_at: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

class PersonalizationProfile(BaseModel):
    """Profile-store record; the front end sends it camelCased."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    display_name: Optional[str] = None
    investing_experience: Optional[Literal['beginner', 'intermediate', 'advanced']] = None
    answer_style: Optional[Literal['concise', 'standard', 'detailed']] = None
    content_priority: Optional[Literal['risk', 'opportunities', 'education']] = None
    avoid_jargon: bool = False
    investment_horizon: Optional[Literal['<1y', '1-3y', '3-7y', '7y+']] = None
    risk_comfort: Optional[Literal['low', 'medium', 'high']] = None
    goals: list[Literal['preserve', 'grow', 'income', 'balanced']] = Field(default_factory=list)
    preferred_language: Optional[str] = None

class AdvisoryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage] = Field(default_factory=list)
    portfolio: Optional[PortfolioSnapshot] = None
    analytics: Optional[AnalyticsSnapshot] = None
    selected_news: Optional[NewsItem] = Field(default=None, alias='selectedNews')
    user_profile: Optional[PersonalizationProfile] = Field(default=None, alias='userProfile')

    def last_user_message(self) -> Optional[ChatMessage]:
        for message in reversed(self.messages):
            if message.role == 'user':
                return message
        return None
