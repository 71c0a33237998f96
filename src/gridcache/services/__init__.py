"""Service layer for grid views.

Services coordinate work that spans a cell or row and the remote source,
keeping that logic out of the caches and the UI.

Services:
- CellControllerBuilder: Picks the load/parse/persist strategy for a field type
- RowService: Single-row operations (create, move, delete, duplicate)
"""

from .controller_builder import CELL_STRATEGIES, CellControllerBuilder, CellStrategy, strategy_for
from .row_service import RowService

__all__ = [
    "CELL_STRATEGIES",
    "CellControllerBuilder",
    "CellStrategy",
    "RowService",
    "strategy_for",
]
