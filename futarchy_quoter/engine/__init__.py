"""Planning, quoting and configuration"""

from .config import QuoterConfig, ConditionalPoolConfig, ProposalConfig, QuoterSettings, load_settings
from .planner import ArbitragePlanner, ArbitragePlan
from .quoter import SwapQuoter, SwapQuote, quote_swap

__all__ = [
    "QuoterConfig", "ConditionalPoolConfig", "ProposalConfig", "QuoterSettings", "load_settings",
    "ArbitragePlanner", "ArbitragePlan", "SwapQuoter", "SwapQuote", "quote_swap"
]
