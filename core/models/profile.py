# ============================================================================
# RELAY PROFILE MODEL
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core model - Codec/quality profiles
# PURPOSE: Named engine configurations tried in order by the fallback policy
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: RelayProfile, ProfileLadder
# DEPENDENCIES: pydantic
# ============================================================================
"""
Relay Profile Model

A profile is an opaque-to-the-sequencer bundle of engine parameters
(codecs, bitrate, resolution, threads). The ladder orders them from
best quality (primary) to most reliable (degraded-N).

Ladders can be declared in YAML:

    max_attempts: 2
    profiles:
      - name: primary
        video_codec: copy
      - name: degraded-1
        video_codec: libx264
        max_height: 720
        video_bitrate: 2500k
        threads: 2
"""

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


class RelayProfile(BaseModel):
    """A named codec/quality configuration for one relay attempt."""
    name: str = Field(..., max_length=64)
    video_codec: str = Field(default="copy", description="'copy' for stream-copy")
    audio_codec: str = Field(default="aac")
    audio_bitrate: Optional[str] = Field(default="128k")
    video_bitrate: Optional[str] = None
    max_height: Optional[int] = Field(default=None, ge=144)
    preset: Optional[str] = None
    threads: Optional[int] = Field(default=None, ge=1)
    keyframe_interval: Optional[int] = Field(default=None, ge=1)
    output_format: str = Field(default="flv")
    realtime: bool = Field(default=True, description="Read input at native rate (-re)")
    extra_output_args: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def reencodes(self) -> bool:
        """True if the profile forces a video re-encode."""
        return self.video_codec != "copy"


class ProfileLadder(BaseModel):
    """Ordered profiles plus the per-source attempt budget."""
    profiles: List[RelayProfile] = Field(..., min_length=1)
    max_attempts: int = Field(default=2, ge=1, le=10)

    @model_validator(mode="after")
    def _unique_names(self) -> "ProfileLadder":
        names = [p.name for p in self.profiles]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate profile names in ladder: {names}")
        return self

    @property
    def attempt_budget(self) -> int:
        """Attempts allowed per source (bounded by ladder length)."""
        return min(self.max_attempts, len(self.profiles))

    def ordinal_of(self, profile: RelayProfile) -> int:
        for i, p in enumerate(self.profiles):
            if p.name == profile.name:
                return i
        raise KeyError(profile.name)

    @classmethod
    def default(cls) -> "ProfileLadder":
        """Primary stream-copy, then one forced re-encode at 720p."""
        return cls(
            max_attempts=2,
            profiles=[
                RelayProfile(
                    name="primary",
                    video_codec="copy",
                    audio_codec="aac",
                    audio_bitrate="128k",
                ),
                RelayProfile(
                    name="degraded-1",
                    video_codec="libx264",
                    preset="veryfast",
                    max_height=720,
                    video_bitrate="2500k",
                    keyframe_interval=60,
                    threads=2,
                    audio_codec="aac",
                    audio_bitrate="128k",
                ),
            ],
        )


__all__ = ["RelayProfile", "ProfileLadder"]
