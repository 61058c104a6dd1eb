"""Library engine: scanning, planning, copying and validation.

Typical flow:
    service = MergeService()
    plan = service.analyze([(Path("/a"), "a"), (Path("/b"), "b")], Path("/dest"))
    report = service.execute(plan, Path("/dest"), on_event=print)
    service.validate(plan, Path("/dest"))
"""

from sslm.library.executor import TransferExecutor, TransferReport
from sslm.library.inventory import Inventory, InventoryBuilder, Source
from sslm.library.planner import PlanBuilder, PlannedFile, TransferPlan
from sslm.library.progress import ProgressEmitter, TransferProgress
from sslm.library.scanner import DirectoryScanner
from sslm.library.services import ImportService, MergeService
from sslm.library.space import DiskUsageProbe, FreeSpaceProbe, SpaceCheck, SpaceEstimator
from sslm.library.types import (
    CopyError,
    FatalIOError,
    FileRecord,
    LibraryError,
    OperationAlreadyActive,
    ProgressEvent,
    ScanError,
    SpaceCheckError,
    StatError,
)
from sslm.library.validator import Mismatch, ValidationReport, Validator

__all__ = [
    # Services
    "ImportService",
    "MergeService",
    # Pipeline
    "DirectoryScanner",
    "Inventory",
    "InventoryBuilder",
    "PlanBuilder",
    "PlannedFile",
    "Source",
    "TransferPlan",
    # Space
    "DiskUsageProbe",
    "FreeSpaceProbe",
    "SpaceCheck",
    "SpaceEstimator",
    # Execution
    "ProgressEmitter",
    "TransferExecutor",
    "TransferProgress",
    "TransferReport",
    "Mismatch",
    "ValidationReport",
    "Validator",
    # Types
    "CopyError",
    "FatalIOError",
    "FileRecord",
    "LibraryError",
    "OperationAlreadyActive",
    "ProgressEvent",
    "ScanError",
    "SpaceCheckError",
    "StatError",
]
