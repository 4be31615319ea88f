"""Strategy registry — the ordered list the generator walks.

Order is priority: the first strategy that is eligible and builds a
signal wins.
"""

from pipwatch.strategy.base import StrategyProtocol
from pipwatch.strategy.head_and_shoulders import HeadAndShouldersStrategy
from pipwatch.strategy.trend_continuation import TrendContinuationStrategy


STRATEGY_REGISTRY: tuple[type, ...] = (
    TrendContinuationStrategy,
    HeadAndShouldersStrategy,
)


def default_strategies() -> list[StrategyProtocol]:
    """Instantiate every registered strategy in priority order."""
    return [cls() for cls in STRATEGY_REGISTRY]


def get_strategy(name: str) -> StrategyProtocol:
    """Look up and instantiate a strategy by name.

    Raises ``KeyError`` if the strategy name is not registered.
    """
    for cls in STRATEGY_REGISTRY:
        if cls.name == name:
            return cls()
    raise KeyError(
        f"Unknown strategy '{name}'. "
        f"Available: {', '.join(cls.name for cls in STRATEGY_REGISTRY)}"
    )
