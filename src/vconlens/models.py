"""Data models for vconlens."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Set, Union

SENTIMENTS = ("positive", "neutral", "negative")


@dataclass
class Party:
    name: str
    role: str = ""
    mailto: Optional[str] = None
    tel: Optional[str] = None


@dataclass
class DialogEntry:
    type: str = ""
    start: Optional[str] = None
    duration: float = 0.0
    parties: List[int] = field(default_factory=list)
    direction: Optional[str] = None
    disposition: Optional[str] = None
    mimetype: Optional[str] = None
    filename: Optional[str] = None
    url: Optional[str] = None


@dataclass
class TranscriptTurn:
    speaker: str
    message: str


@dataclass
class TranscriptBlock:
    turns: List[TranscriptTurn] = field(default_factory=list)
    vendor: str = ""
    kind: str = field(default="transcript", init=False)


@dataclass
class InsightsBlock:
    category: Optional[str] = None
    sentiment: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    issues_raised: str = ""
    interaction_duration: float = 0.0
    number_of_participants: int = 0
    vendor: str = ""
    kind: str = field(default="insights", init=False)


AnalysisBlock = Union[TranscriptBlock, InsightsBlock]


@dataclass
class ConversationRecord:
    """One vCon. Analysis blocks are looked up by kind, never by position."""

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    parties: List[Party] = field(default_factory=list)
    dialog: List[DialogEntry] = field(default_factory=list)
    analysis: List[AnalysisBlock] = field(default_factory=list)

    def block(self, kind: str) -> Optional[AnalysisBlock]:
        for item in self.analysis:
            if item.kind == kind:
                return item
        return None

    @property
    def transcript(self) -> Optional[TranscriptBlock]:
        return self.block("transcript")  # type: ignore[return-value]

    @property
    def insights(self) -> Optional[InsightsBlock]:
        # Other dict-bodied blocks also parse as insights; prefer a categorised one.
        blocks = [b for b in self.analysis if b.kind == "insights"]
        for item in blocks:
            if item.category is not None:
                return item  # type: ignore[return-value]
        return blocks[0] if blocks else None  # type: ignore[return-value]

    @property
    def category(self) -> Optional[str]:
        insights = self.insights
        return insights.category if insights else None

    @property
    def sentiment(self) -> Optional[str]:
        insights = self.insights
        return insights.sentiment if insights else None

    @property
    def keywords(self) -> List[str]:
        insights = self.insights
        return list(insights.keywords) if insights else []

    @property
    def turns(self) -> List[TranscriptTurn]:
        transcript = self.transcript
        return list(transcript.turns) if transcript else []

    @property
    def label(self) -> str:
        names = [p.name for p in self.parties if p.name]
        if names:
            return " / ".join(names)
        return self.id


@dataclass
class DateRange:
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def active(self) -> bool:
        return self.start is not None or self.end is not None


@dataclass
class FilterState:
    selected_categories: Set[str] = field(default_factory=set)
    content_search: str = ""
    date_range: DateRange = field(default_factory=DateRange)
    selected_sentiments: Set[str] = field(default_factory=set)
    detail_category: Optional[str] = None


@dataclass
class SentimentTally:
    positive: int = 0
    neutral: int = 0
    negative: int = 0

    def add(self, sentiment: Optional[str]) -> None:
        if sentiment in SENTIMENTS:
            setattr(self, sentiment, getattr(self, sentiment) + 1)

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.negative

    def mood(self) -> str:
        total = self.total
        if total == 0:
            return "none"
        if self.positive / total > 0.6:
            return "positive"
        if self.negative / total > 0.6:
            return "negative"
        return "mixed"


@dataclass
class CategorySummary:
    category: str
    count: int
    is_selected: bool
    sentiment: SentimentTally = field(default_factory=SentimentTally)


@dataclass
class KeywordCount:
    keyword: str
    count: int


@dataclass
class CategoryDetail:
    category: str
    items: List[ConversationRecord]
    total_duration: float
    avg_duration: float
    total_participants: int
    avg_participants: float
    sentiment: SentimentTally
    top_keywords: List[KeywordCount]
    recent_items: List[ConversationRecord]

    @property
    def satisfaction_percent(self) -> int:
        if not self.items:
            return 0
        score = self.sentiment.positive + 0.5 * self.sentiment.neutral
        return round(score / len(self.items) * 100)
