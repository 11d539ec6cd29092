from .agent import ArbitrageBot, BotContext, CycleReport
from .config import AgentConfig, PairConfig, PollConfig, StrategyConfig
from .models import QuoteResult, QuoteStatus, Route, SwapDecision, SwapResult, Token
from .poller import OverlapPolicy, PollDriver
from .strategy import ThresholdEvaluator

__all__ = [
    "AgentConfig",
    "PairConfig",
    "PollConfig",
    "StrategyConfig",
    "ArbitrageBot",
    "BotContext",
    "CycleReport",
    "OverlapPolicy",
    "PollDriver",
    "QuoteResult",
    "QuoteStatus",
    "Route",
    "SwapDecision",
    "SwapResult",
    "ThresholdEvaluator",
    "Token",
]
