#!/usr/bin/env python3
"""
Configuration schemas for the futarchy quoter.

Pydantic models for the engine knobs and for the declarative pool ordering
of each proposal. Pool addresses and asset/currency roles always come from
here, never from the core math.
"""

import json
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


class QuoterConfig(BaseModel):
    """Engine behaviour shared by planning and quoting"""
    # One step per initialized tick when the liquidity source indexes ticks,
    # otherwise one per tick-spacing multiple: with spacing 1 the default
    # covers about a 2.7x price move.
    max_walk_iterations: int = Field(
        default=10_000, gt=0,
        description="Tick steps allowed per multi-tick walk; raise it for tick-by-tick providers on fine spacings"
    )
    strict_impact: bool = Field(default=True, description="Reject |impact| > 1 instead of warning")
    default_slippage_bps: int = Field(default=50, ge=0, le=10_000, description="Slippage tolerance for quotes")
    always_walk: bool = Field(default=False, description="Run the exact walk even when no boundary is crossed")


class ConditionalPoolConfig(BaseModel):
    """One conditional pool and the caller's semantic token roles"""
    address: str = Field(min_length=1, description="Pool address")
    asset: str = Field(min_length=1, description="Conditional company (asset) token")
    currency: str = Field(min_length=1, description="Conditional currency token")

    @model_validator(mode="after")
    def validate_distinct_tokens(self):
        if self.asset.lower() == self.currency.lower():
            raise ValueError("asset and currency must be different tokens")
        return self


class ProposalConfig(BaseModel):
    """YES and NO pools of one proposal"""
    yes: Optional[ConditionalPoolConfig] = Field(None, description="Pool priced on the event happening")
    no: Optional[ConditionalPoolConfig] = Field(None, description="Pool priced on the event not happening")


class QuoterSettings(BaseModel):
    """Root settings document"""
    quoter: QuoterConfig = Field(default_factory=QuoterConfig)
    proposals: Dict[str, ProposalConfig] = Field(default_factory=dict)

    @field_validator("proposals")
    @classmethod
    def validate_proposal_ids(cls, v):
        for proposal_id in v:
            if not proposal_id.strip():
                raise ValueError("proposal ids must be non-empty")
        return v

    def proposal(self, proposal_id: str) -> ProposalConfig:
        try:
            return self.proposals[proposal_id]
        except KeyError:
            raise KeyError(f"Unknown proposal {proposal_id!r}") from None


def load_settings(path: Union[str, Path]) -> QuoterSettings:
    """Load settings from a JSON file; unknown top-level keys are ignored"""
    with open(path, "r") as f:
        data = json.load(f)
    return QuoterSettings(**data)
