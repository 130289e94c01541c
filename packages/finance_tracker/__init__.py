"""Public interface for the ``finance_tracker`` package.

This module exposes the container, its events and states, the service and
store, and the public models as the stable import surface. There is no
runtime logic here, only symbol re-exports.
"""

from .api import close_container, open_container, run_events
from .config import TrackerSettings, load_settings
from .container import RecordStateContainer
from .errors import (
    ErrorKind,
    FinanceError,
    StorageError,
    UnknownError,
    ValidationError,
    translate_exception,
)
from .events import (
    Add,
    AddInstallments,
    ClearAll,
    ClearFilters,
    Delete,
    FilterByDateRange,
    FilterByType,
    Load,
    RecordEvent,
    Refresh,
    Search,
    Update,
)
from .filters import DateRange, FilterCriteria
from .models import (
    BalanceIndicator,
    FinanceRecord,
    FinancialSummary,
    OperationKind,
    Records,
)
from .service import RecordService
from .states import (
    ContainerState,
    Failed,
    InFlight,
    Initial,
    Loaded,
    Loading,
    OperationSucceeded,
)
from .store import RecordStore, SqlRecordStore

__all__ = [
    # API
    "open_container",
    "close_container",
    "run_events",
    "TrackerSettings",
    "load_settings",
    "RecordStateContainer",
    "RecordService",
    "RecordStore",
    "SqlRecordStore",
    # Events
    "Load",
    "Refresh",
    "Add",
    "AddInstallments",
    "Update",
    "Delete",
    "ClearAll",
    "Search",
    "FilterByDateRange",
    "FilterByType",
    "ClearFilters",
    "RecordEvent",
    # States
    "Initial",
    "Loading",
    "InFlight",
    "Loaded",
    "OperationSucceeded",
    "Failed",
    "ContainerState",
    # Models / errors
    "FinanceRecord",
    "FinancialSummary",
    "BalanceIndicator",
    "OperationKind",
    "Records",
    "DateRange",
    "FilterCriteria",
    "ErrorKind",
    "FinanceError",
    "ValidationError",
    "StorageError",
    "UnknownError",
    "translate_exception",
]
