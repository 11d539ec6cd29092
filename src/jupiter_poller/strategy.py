from typing import Optional

from .config import StrategyConfig
from .models import Route, SwapDecision


class ThresholdEvaluator:
    def __init__(self, config: StrategyConfig) -> None:
        self.config = config

    @staticmethod
    def min_out_amount(route: Optional[Route]) -> int:
        if route is None or route.other_amount_threshold is None:
            return 0
        return route.other_amount_threshold

    def evaluate(self, route: Optional[Route], input_amount: int) -> SwapDecision:
        min_out = self.min_out_amount(route)
        fee_allowance = self.config.fee_allowance

        if route is None:
            reason = "no route available"
            execute = False
        elif min_out > input_amount + fee_allowance:
            reason = "guaranteed output exceeds input"
            execute = True
        else:
            reason = "guaranteed output does not exceed input"
            execute = False

        return SwapDecision(
            execute=execute,
            reason=reason,
            input_amount=input_amount,
            min_out_amount=min_out,
            fee_allowance=fee_allowance,
            route=route,
        )
