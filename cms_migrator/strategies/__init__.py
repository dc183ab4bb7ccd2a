"""
Category strategies, selected by content category.
"""

from cms_migrator.models.entities import Category
from cms_migrator.strategies.base import CategoryStrategy
from cms_migrator.strategies.dashboard import DashboardStrategy
from cms_migrator.strategies.download_lists import DownloadListStrategy
from cms_migrator.strategies.events import EventStrategy
from cms_migrator.strategies.persons import PersonStrategy
from cms_migrator.strategies.presentations import PresentationStrategy
from cms_migrator.strategies.press_releases import PressReleaseStrategy

STRATEGIES: dict[Category, type[CategoryStrategy]] = {
    strategy.category: strategy
    for strategy in (
        PressReleaseStrategy,
        EventStrategy,
        PresentationStrategy,
        DownloadListStrategy,
        PersonStrategy,
    )
}


def get_strategy(category: Category) -> type[CategoryStrategy]:
    try:
        return STRATEGIES[category]
    except KeyError:
        raise ValueError(f"No migration strategy for '{category.value}'.") from None


__all__ = [
    "CategoryStrategy",
    "DashboardStrategy",
    "STRATEGIES",
    "get_strategy",
]
