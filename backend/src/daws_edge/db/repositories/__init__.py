"""Repository pattern implementations for the configuration tables."""

from daws_edge.db.repositories.admin import AdminAllowListRepository
from daws_edge.db.repositories.base import BaseRepository
from daws_edge.db.repositories.routing import RoutingRule
from daws_edge.db.repositories.routing import RoutingRuleRepository

__all__ = [
    "AdminAllowListRepository",
    "BaseRepository",
    "RoutingRule",
    "RoutingRuleRepository",
]
