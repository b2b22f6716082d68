"""
Canonical records returned by the API.
Every upstream payload is normalized into one of these shapes.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True)


class ChannelRef(BaseModel):
    """Channel a video was published on."""
    id: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None


class Thumbnails(BaseModel):
    sm: Optional[str] = None
    md: Optional[str] = None


class VideoRecord(_CamelModel):
    """Video from the video catalog, enriched with duration and thumbnails."""
    id: str
    url: str
    title: Optional[str] = None
    channel: ChannelRef = Field(default_factory=ChannelRef)
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)
    duration_sec: int = Field(default=0, alias="durationSec")
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")


class VideoFeed(_CamelModel):
    items: List[VideoRecord] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")


class ChannelSummary(_CamelModel):
    handle: str
    channel_id: Optional[str] = Field(default=None, alias="channelId")
    title: Optional[str] = None
    avatar: Optional[str] = None


class ChannelList(BaseModel):
    items: List[ChannelSummary] = Field(default_factory=list)


class NewsRecord(_CamelModel):
    """News article from a syndication feed."""
    id: str
    url: Optional[str] = None
    title: Optional[str] = None
    image: Optional[str] = None
    source: str
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    summary: Optional[str] = None


class NewsFeed(_CamelModel):
    items: List[NewsRecord] = Field(default_factory=list)
    next_cursor: Optional[str] = Field(default=None, alias="nextCursor")


class TeamScore(BaseModel):
    id: str = ""
    name: str
    logo: Optional[str] = None
    goals: Optional[int] = None


class MatchRecord(_CamelModel):
    """Match normalized from either score provider."""
    id: str
    league: str = "League"
    country: str = ""
    kickoff: Optional[str] = Field(default=None, alias="datetime")
    status: str = ""
    minute: Optional[int] = None
    home: TeamScore
    away: TeamScore


class ScoreBoard(BaseModel):
    items: List[MatchRecord] = Field(default_factory=list)


class PollOptionView(BaseModel):
    id: str
    text: str
    votes: int = 0


class ActivePollView(_CamelModel):
    """Active poll as seen by one device."""
    id: str
    question: str
    ends_at: datetime = Field(alias="endsAt")
    has_voted: bool = Field(default=False, alias="hasVoted")
    selected_option_id: Optional[str] = Field(default=None, alias="selectedOptionId")
    options: List[PollOptionView] = Field(default_factory=list)


class VoteRequest(_CamelModel):
    option_id: str = Field(alias="optionId", min_length=1)
    device_id_hash: str = Field(alias="deviceIdHash", min_length=32, max_length=128)


class VoteResult(BaseModel):
    ok: bool = True
    totals: Dict[str, int] = Field(default_factory=dict)


class PollRecord(_CamelModel):
    """Poll row as listed to administrators."""
    id: str
    question: str
    starts_at: datetime = Field(alias="startsAt")
    ends_at: datetime = Field(alias="endsAt")
    is_active: bool = Field(alias="isActive")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


class PollList(BaseModel):
    items: List[PollRecord] = Field(default_factory=list)


class CreatePollRequest(_CamelModel):
    question: str = Field(min_length=1)
    options: List[str] = Field(default_factory=list)
    starts_at: datetime = Field(alias="startsAt")
    ends_at: datetime = Field(alias="endsAt")
    is_active: bool = Field(default=False, alias="isActive")


class CreatePollResult(_CamelModel):
    ok: bool = True
    poll_id: str = Field(alias="pollId")


class OkResult(BaseModel):
    ok: bool = True
