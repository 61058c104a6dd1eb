"""Pydantic schemas for the plan wire format.

A plan leaves the engine after analysis and comes back unchanged for
execution, typically through a JSON file. Field names are camelCase on the
wire and snake_case in Python.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sslm.core.types import ImportStrategy, SubframeMode
from sslm.library.paths import UnsafePathError, validate_relative_path
from sslm.library.planner import DuplicateExample, PlannedFile, SourceStats, TransferPlan


class WireModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Plan schemas ===


class PlannedFileSchema(WireModel):
    """One file to place in the destination."""

    source_path: str
    relative_path: str
    size: int = Field(ge=0)
    mtime: float
    source_id: str = ""

    @field_validator("relative_path")
    @classmethod
    def check_relative_path(cls, v: str) -> str:
        """Reject paths that would leave the destination root."""
        try:
            return validate_relative_path(v)
        except UnsafePathError as e:
            raise ValueError(str(e)) from e


class DuplicateExampleSchema(WireModel):
    """A path provided by several sources."""

    relative_path: str
    count: int
    sources: list[str]


class DuplicatesSchema(WireModel):
    count: int = 0
    examples: list[DuplicateExampleSchema] = Field(default_factory=list)


class ConflictsSchema(WireModel):
    count: int = 0
    resolutions: list[dict[str, Any]] = Field(default_factory=list)


class ExistingSchema(WireModel):
    """Winners the destination already holds."""

    count: int = 0
    bytes: int = 0


class SourceStatsSchema(WireModel):
    files: int = 0
    bytes: int = 0


class TransferPlanSchema(WireModel):
    """Serialized TransferPlan."""

    total_files: int = Field(ge=0)
    unique_files: int = Field(ge=0)
    total_bytes: int = Field(ge=0)
    total_bytes_all_unique: int = 0
    files_to_copy: list[PlannedFileSchema] = Field(default_factory=list)
    files_already_present: list[PlannedFileSchema] = Field(default_factory=list)
    duplicates: DuplicatesSchema = Field(default_factory=DuplicatesSchema)
    conflicts: ConflictsSchema = Field(default_factory=ConflictsSchema)
    existing_in_destination: ExistingSchema = Field(default_factory=ExistingSchema)
    bytes_already_in_destination: int = 0
    source_stats: dict[str, SourceStatsSchema] = Field(default_factory=dict)
    strategy: ImportStrategy = ImportStrategy.FULL
    subframe_mode: SubframeMode = SubframeMode.ALL


# === Converters ===


def _file_to_schema(planned: PlannedFile) -> PlannedFileSchema:
    return PlannedFileSchema(
        source_path=planned.source_path,
        relative_path=planned.relative_path,
        size=planned.size,
        mtime=planned.mtime,
        source_id=planned.source_id,
    )


def _schema_to_file(schema: PlannedFileSchema) -> PlannedFile:
    return PlannedFile(
        source_path=schema.source_path,
        relative_path=schema.relative_path,
        size=schema.size,
        mtime=schema.mtime,
        source_id=schema.source_id,
    )


def plan_to_schema(plan: TransferPlan) -> TransferPlanSchema:
    """Convert TransferPlan to its wire model."""
    return TransferPlanSchema(
        total_files=plan.total_files,
        unique_files=plan.unique_files,
        total_bytes=plan.total_bytes,
        total_bytes_all_unique=plan.total_bytes_all_unique,
        files_to_copy=[_file_to_schema(f) for f in plan.files_to_copy],
        files_already_present=[_file_to_schema(f) for f in plan.files_already_present],
        duplicates=DuplicatesSchema(
            count=plan.duplicate_count,
            examples=[
                DuplicateExampleSchema(
                    relative_path=d.relative_path, count=d.count, sources=list(d.sources)
                )
                for d in plan.duplicate_examples
            ],
        ),
        conflicts=ConflictsSchema(
            count=plan.conflict_count,
            resolutions=list(plan.conflict_resolutions),
        ),
        existing_in_destination=ExistingSchema(
            count=plan.existing_count, bytes=plan.existing_bytes
        ),
        bytes_already_in_destination=plan.existing_bytes,
        source_stats={
            source_id: SourceStatsSchema(files=s.files, bytes=s.bytes)
            for source_id, s in plan.source_stats.items()
        },
        strategy=plan.strategy,
        subframe_mode=plan.subframe_mode,
    )


def schema_to_plan(schema: TransferPlanSchema) -> TransferPlan:
    """Convert a wire model back to a TransferPlan."""
    return TransferPlan(
        total_files=schema.total_files,
        unique_files=schema.unique_files,
        total_bytes=schema.total_bytes,
        total_bytes_all_unique=schema.total_bytes_all_unique,
        files_to_copy=[_schema_to_file(f) for f in schema.files_to_copy],
        files_already_present=[_schema_to_file(f) for f in schema.files_already_present],
        duplicate_count=schema.duplicates.count,
        duplicate_examples=[
            DuplicateExample(relative_path=d.relative_path, count=d.count, sources=list(d.sources))
            for d in schema.duplicates.examples
        ],
        conflict_count=schema.conflicts.count,
        conflict_resolutions=list(schema.conflicts.resolutions),
        existing_count=schema.existing_in_destination.count,
        existing_bytes=schema.existing_in_destination.bytes,
        source_stats={
            source_id: SourceStats(files=s.files, bytes=s.bytes)
            for source_id, s in schema.source_stats.items()
        },
        strategy=schema.strategy,
        subframe_mode=schema.subframe_mode,
    )


def plan_to_json(plan: TransferPlan, indent: int | None = 2) -> str:
    """Serialize a plan to camelCase JSON."""
    return plan_to_schema(plan).model_dump_json(by_alias=True, indent=indent)


def plan_from_json(data: str | bytes) -> TransferPlan:
    """Parse camelCase JSON into a plan.

    Raises:
        pydantic.ValidationError: If the document is not a valid plan.
    """
    return schema_to_plan(TransferPlanSchema.model_validate_json(data))
