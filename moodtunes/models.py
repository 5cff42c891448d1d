"""
Shared data models for the MoodTunes service.

This module defines the core domain models used across multiple layers
of the application (mood engine, provider client, API, CLI).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class MoodLabel(str, Enum):
    """Discrete mood vocabulary.

    Only NEUTRAL, HAPPY, CALM and SURPRISED are produced by the landmark
    classifier. SAD and ENERGETIC exist for query mapping only.
    """

    NEUTRAL = "neutral"
    HAPPY = "happy"
    CALM = "calm"
    SURPRISED = "surprised"
    SAD = "sad"
    ENERGETIC = "energetic"


class Language(str, Enum):
    """Supported language preferences. ANY is the wildcard."""

    ANY = "any"
    ENGLISH = "english"
    HINDI = "hindi"
    URDU = "urdu"
    PUNJABI = "punjabi"
    TAMIL = "tamil"
    TELUGU = "telugu"
    KOREAN = "korean"
    JAPANESE = "japanese"
    ARABIC = "arabic"


class LandmarkPoint(BaseModel):
    """A single facial landmark in normalized frame coordinates."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float = 0.0


class RecommendationRequest(BaseModel):
    """A mood and language pair to turn into a playlist search."""

    model_config = ConfigDict(frozen=True)

    mood: str
    language: str = Language.ANY.value


class Playlist(BaseModel):
    """A playlist normalized from a provider search result."""

    id: str
    name: str = ""
    description: str | None = None
    owner: str = "Unknown"
    image_url: str | None = None
    external_url: str | None = None


class Track(BaseModel):
    """A playable track normalized from a provider playlist listing."""

    id: str
    name: str = ""
    artists: str = Field("", description="Artist names joined with ', '")
    external_url: str | None = None


class Recommendation(BaseModel):
    """Result of a playlist search for a mood and language."""

    mood: str
    language: str
    query: str
    playlists: list[Playlist] = Field(default_factory=list)


class CredentialStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    VALID = "valid"
    EXPIRED = "expired"


class CredentialState(BaseModel):
    """Provider access token and its expiry in epoch milliseconds."""

    access_token: str | None = None
    expires_at_ms: float = 0.0


class MoodSnapshot(BaseModel):
    """Represents the latest stabilized mood and any playlists found for it."""

    mood: str = Field(..., description="The stabilized mood value")
    timestamp: float | None = Field(
        None, description="Unix timestamp when the snapshot was published"
    )
    recommended_for: str | None = Field(
        None, description="Mood the playlist search was made for"
    )
    query: str | None = Field(None, description="Search query used for playlists")
    playlists: list[Playlist] | None = Field(
        None, description="Playlists found for the mood, if a search completed"
    )
