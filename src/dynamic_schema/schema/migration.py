"""Schema migration manager.

Brings records written against one schema version into conformance with a
newer one. Field correspondence is worked out once per version transition:

  same field id in both schemas     -> exact mapping
  similarity >= fuzzy threshold     -> fuzzy mapping (greedy, best score first)
  review threshold <= similarity    -> pending review, blocks affected records
  anything else                     -> removed (old side) / added (new side)

Per record the state machine is unmigrated -> migrated; migrating a record that
already carries the target schema id and version returns it unchanged.
"""

import copy
import re
from dataclasses import dataclass, field, replace
from difflib import SequenceMatcher
from typing import Any

from loguru import logger

from dynamic_schema.errors import MigrationError
from dynamic_schema.schema.dependency import is_empty_value
from dynamic_schema.schema.parser import FieldDefinition, SchemaDefinition, SchemaRecord
from dynamic_schema.schema.types import MappingConfidence

DEFAULT_FUZZY_THRESHOLD = 0.7
DEFAULT_REVIEW_THRESHOLD = 0.55

NAME_WEIGHT = 0.6
ROLE_WEIGHT = 0.25
TYPE_WEIGHT = 0.15


# --- Result Data Model ---


@dataclass
class FieldMapping:
    """Correspondence between a field of the old schema and one of the new."""

    old_field_id: str
    new_field_id: str
    confidence: MappingConfidence
    similarity_score: float | None = None  # fuzzy mappings only


@dataclass
class MappingCandidate:
    """A plausible but unconfirmed mapping awaiting a decision."""

    old_field_id: str
    new_field_id: str
    similarity_score: float


@dataclass
class SchemaMigrationConfig:
    """Diff between two schema versions, consumed by migrate_record."""

    from_schema_id: str
    from_version: str
    to_schema_id: str
    to_version: str
    field_mappings: list[FieldMapping] = field(default_factory=list)
    added_fields: list[str] = field(default_factory=list)
    removed_fields: list[str] = field(default_factory=list)
    modified_fields: list[str] = field(default_factory=list)
    pending_review: list[MappingCandidate] = field(default_factory=list)
    affected_call_count: int = 0

    @property
    def pending_field_ids(self) -> set[str]:
        """Old field ids that cannot migrate until a mapping is resolved."""
        return {candidate.old_field_id for candidate in self.pending_review}

    def mapping_for(self, old_field_id: str) -> FieldMapping | None:
        for mapping in self.field_mappings:
            if mapping.old_field_id == old_field_id:
                return mapping
        return None


@dataclass
class RecordMigrationFailure:
    """Why one record of a batch could not be migrated."""

    record_id: str | None
    index: int
    reason: str


@dataclass
class MigrationSummary:
    migrated_count: int
    total_count: int
    schema_id: str
    schema_version: str


@dataclass
class MigrationBatchResult:
    """Outcome of migrating a batch of records."""

    migrated: list[SchemaRecord]
    failures: list[RecordMigrationFailure]
    summary: MigrationSummary


# --- Similarity ---


def _normalize_name(text: str) -> str:
    """Split camelCase and snake_case into lower-case words joined by spaces."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", text or "")
    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1 \2", text)
    return " ".join(re.split(r"[\s_\-.]+", text.lower())).strip()


def name_similarity(old: FieldDefinition, new: FieldDefinition) -> float:
    """Best SequenceMatcher ratio between the fields' names or display names."""
    best = 0.0
    for old_text in (old.name, old.display_name):
        for new_text in (new.name, new.display_name):
            left, right = _normalize_name(old_text), _normalize_name(new_text)
            if not left or not right:
                continue
            best = max(best, SequenceMatcher(None, left, right).ratio())
    return best


def field_similarity(old: FieldDefinition, new: FieldDefinition) -> float:
    """Score in [0, 1] for how likely `new` is the successor of `old`."""
    score = NAME_WEIGHT * name_similarity(old, new)
    if old.semantic_role == new.semantic_role:
        score += ROLE_WEIGHT
    if old.type == new.type:
        score += TYPE_WEIGHT
    return round(score, 4)


# --- Migration config ---


def _is_modified(old: FieldDefinition, new: FieldDefinition) -> bool:
    return (
        old.type != new.type
        or old.name != new.name
        or list(old.select_options) != list(new.select_options)
        or old.required != new.required
    )


def build_migration_config(
    from_schema: SchemaDefinition,
    to_schema: SchemaDefinition,
    affected_call_count: int = 0,
    fuzzy_threshold: float | None = None,
    review_threshold: float | None = None,
) -> SchemaMigrationConfig:
    """Work out how fields of `from_schema` map onto `to_schema`.

    Args:
        from_schema: The schema records are currently written against.
        to_schema: The schema records should be migrated to.
        affected_call_count: Informational count of records that will migrate.
        fuzzy_threshold: Similarity at or above which a pair maps automatically.
        review_threshold: Similarity at or above which a pair is held for review.

    Returns:
        A SchemaMigrationConfig describing mappings and field changes.

    Raises:
        MigrationError: If the review threshold is above the fuzzy threshold.
    """
    fuzzy_threshold = DEFAULT_FUZZY_THRESHOLD if fuzzy_threshold is None else fuzzy_threshold
    review_threshold = DEFAULT_REVIEW_THRESHOLD if review_threshold is None else review_threshold
    if review_threshold > fuzzy_threshold:
        raise MigrationError(
            f"Review threshold {review_threshold} is above fuzzy threshold {fuzzy_threshold}"
        )

    config = SchemaMigrationConfig(
        from_schema_id=from_schema.id,
        from_version=from_schema.version,
        to_schema_id=to_schema.id,
        to_version=to_schema.version,
        affected_call_count=affected_call_count,
    )

    new_ids = {new_field.id for new_field in to_schema.fields}
    old_ids = {old_field.id for old_field in from_schema.fields}

    # --- Exact mappings by id ---
    for old_field in from_schema.fields:
        new_field = to_schema.get_field(old_field.id)
        if new_field is None:
            continue
        config.field_mappings.append(
            FieldMapping(old_field.id, new_field.id, MappingConfidence.EXACT)
        )
        if _is_modified(old_field, new_field):
            config.modified_fields.append(old_field.id)

    unmatched_old = [f for f in from_schema.fields if f.id not in new_ids]
    unmatched_new = [f for f in to_schema.fields if f.id not in old_ids]

    # --- Fuzzy matching, best score first ---
    scored = sorted(
        (
            (field_similarity(old_field, new_field), old_index, new_index)
            for old_index, old_field in enumerate(unmatched_old)
            for new_index, new_field in enumerate(unmatched_new)
        ),
        key=lambda item: (-item[0], item[1], item[2]),
    )

    used_old: set[int] = set()
    used_new: set[int] = set()
    for score, old_index, new_index in scored:
        if score < fuzzy_threshold:
            break
        if old_index in used_old or new_index in used_new:
            continue
        used_old.add(old_index)
        used_new.add(new_index)
        config.field_mappings.append(
            FieldMapping(
                unmatched_old[old_index].id,
                unmatched_new[new_index].id,
                MappingConfidence.FUZZY,
                similarity_score=score,
            )
        )

    # --- Ambiguous pairs held for review ---
    for score, old_index, new_index in scored:
        if score < review_threshold:
            break
        if old_index in used_old or new_index in used_new:
            continue
        config.pending_review.append(
            MappingCandidate(
                unmatched_old[old_index].id, unmatched_new[new_index].id, score
            )
        )

    pending_old = {candidate.old_field_id for candidate in config.pending_review}
    pending_new = {candidate.new_field_id for candidate in config.pending_review}
    config.removed_fields = [
        old_field.id
        for index, old_field in enumerate(unmatched_old)
        if index not in used_old and old_field.id not in pending_old
    ]
    config.added_fields = [
        new_field.id
        for index, new_field in enumerate(unmatched_new)
        if index not in used_new and new_field.id not in pending_new
    ]

    logger.info(
        f"Migration {from_schema.id}@{from_schema.version} -> "
        f"{to_schema.id}@{to_schema.version}: {len(config.field_mappings)} mapped, "
        f"{len(config.added_fields)} added, {len(config.removed_fields)} removed, "
        f"{len(config.pending_review)} pending review"
    )
    return config


def _settle_candidates(
    config: SchemaMigrationConfig, pending_review: list[MappingCandidate]
) -> tuple[list[str], list[str]]:
    """Recompute added/removed lists after candidates were taken off review."""
    still_old = {candidate.old_field_id for candidate in pending_review}
    still_new = {candidate.new_field_id for candidate in pending_review}
    mapped_old = {mapping.old_field_id for mapping in config.field_mappings}
    mapped_new = {mapping.new_field_id for mapping in config.field_mappings}

    removed = list(config.removed_fields)
    added = list(config.added_fields)
    for candidate in config.pending_review:
        if (
            candidate.old_field_id not in still_old
            and candidate.old_field_id not in mapped_old
            and candidate.old_field_id not in removed
        ):
            removed.append(candidate.old_field_id)
        if (
            candidate.new_field_id not in still_new
            and candidate.new_field_id not in mapped_new
            and candidate.new_field_id not in added
        ):
            added.append(candidate.new_field_id)
    return removed, added


def resolve_mapping(
    config: SchemaMigrationConfig, old_field_id: str, new_field_id: str
) -> SchemaMigrationConfig:
    """Return a new config with a manual mapping from old_field_id to new_field_id.

    The old field must be pending review or removed, and the new field pending
    review or added.

    Raises:
        MigrationError: If either field is already mapped or unknown to the config.
    """
    pending_old = {candidate.old_field_id for candidate in config.pending_review}
    pending_new = {candidate.new_field_id for candidate in config.pending_review}

    if old_field_id not in pending_old and old_field_id not in config.removed_fields:
        raise MigrationError(f"Field '{old_field_id}' is not awaiting a mapping")
    if new_field_id not in pending_new and new_field_id not in config.added_fields:
        raise MigrationError(f"Field '{new_field_id}' is not available as a mapping target")

    mappings = [
        *config.field_mappings,
        FieldMapping(old_field_id, new_field_id, MappingConfidence.MANUAL),
    ]
    pending = [
        candidate
        for candidate in config.pending_review
        if candidate.old_field_id != old_field_id and candidate.new_field_id != new_field_id
    ]
    resolved = replace(
        config,
        field_mappings=mappings,
        removed_fields=[f for f in config.removed_fields if f != old_field_id],
        added_fields=[f for f in config.added_fields if f != new_field_id],
    )
    removed, added = _settle_candidates(resolved, pending)
    logger.debug(f"Resolved manual mapping {old_field_id} -> {new_field_id}")
    return replace(resolved, pending_review=pending, removed_fields=removed, added_fields=added)


def dismiss_candidate(config: SchemaMigrationConfig, old_field_id: str) -> SchemaMigrationConfig:
    """Return a new config confirming old_field_id has no successor.

    Raises:
        MigrationError: If old_field_id is not pending review.
    """
    if old_field_id not in config.pending_field_ids:
        raise MigrationError(f"Field '{old_field_id}' is not pending review")

    pending = [
        candidate for candidate in config.pending_review if candidate.old_field_id != old_field_id
    ]
    removed, added = _settle_candidates(config, pending)
    return replace(config, pending_review=pending, removed_fields=removed, added_fields=added)


# --- Record migration ---


def needs_migration(record: SchemaRecord, target: SchemaDefinition | None = None) -> bool:
    """True when the record lacks a schema stamp or is stamped with another pairing."""
    if not record.schema_id or not record.schema_version:
        return True
    if target is None:
        return False
    return (record.schema_id, record.schema_version) != (target.id, target.version)


def _is_stamped_with(record: SchemaRecord, schema_id: str, version: str) -> bool:
    return record.schema_id == schema_id and record.schema_version == version


def _belongs_to_source(record: SchemaRecord, config: SchemaMigrationConfig) -> bool:
    """Unstamped parts of a record's stamp are taken to match the source."""
    if record.schema_id is not None and record.schema_id != config.from_schema_id:
        return False
    if record.schema_version is not None and record.schema_version != config.from_version:
        return False
    return True


def _check_schemas(
    config: SchemaMigrationConfig, from_schema: SchemaDefinition, to_schema: SchemaDefinition
) -> None:
    if (from_schema.id, from_schema.version) != (config.from_schema_id, config.from_version):
        raise MigrationError(
            f"Source schema {from_schema.id}@{from_schema.version} does not match "
            f"migration config {config.from_schema_id}@{config.from_version}"
        )
    if (to_schema.id, to_schema.version) != (config.to_schema_id, config.to_version):
        raise MigrationError(
            f"Target schema {to_schema.id}@{to_schema.version} does not match "
            f"migration config {config.to_schema_id}@{config.to_version}"
        )


def migrate_record(
    record: SchemaRecord,
    config: SchemaMigrationConfig,
    from_schema: SchemaDefinition,
    to_schema: SchemaDefinition,
) -> SchemaRecord:
    """Produce a new record conforming to the target schema.

    Args:
        record: The record to migrate. It is never modified.
        config: The migration config built for from_schema -> to_schema.
        from_schema: The schema the record was written against.
        to_schema: The schema to migrate to.

    Returns:
        A new SchemaRecord stamped with the target schema, or `record` itself
        when it already carries the target stamp.

    Raises:
        MigrationError: If the record belongs to a different schema, holds a value
            for a field still pending review, or the config does not fit the schemas.
    """
    _check_schemas(config, from_schema, to_schema)

    if _is_stamped_with(record, config.to_schema_id, config.to_version):
        return record

    if not _belongs_to_source(record, config):
        raise MigrationError(
            f"Record is stamped {record.schema_id}@{record.schema_version}, expected "
            f"{config.from_schema_id}@{config.from_version}"
        )

    for field_id in sorted(config.pending_field_ids):
        old_field = from_schema.get_field(field_id)
        if old_field is not None and not is_empty_value(record.values.get(old_field.name)):
            raise MigrationError(
                f"Field '{field_id}' has an unresolved mapping; resolve or dismiss it first"
            )

    values: dict[str, Any] = {}
    for mapping in config.field_mappings:
        old_field = from_schema.get_field(mapping.old_field_id)
        new_field = to_schema.get_field(mapping.new_field_id)
        if old_field is None or new_field is None:
            raise MigrationError(
                f"Mapping {mapping.old_field_id} -> {mapping.new_field_id} references a field "
                f"missing from its schema"
            )
        if old_field.name in record.values:
            values[new_field.name] = copy.deepcopy(record.values[old_field.name])

    for field_id in config.added_fields:
        new_field = to_schema.get_field(field_id)
        if new_field is None or new_field.name in values or new_field.default_value is None:
            continue
        values[new_field.name] = copy.deepcopy(new_field.default_value)

    # Keys that are not schema fields on either side pass through untouched
    known_names = {f.name for f in from_schema.fields} | {f.name for f in to_schema.fields}
    for key, value in record.values.items():
        if key not in known_names:
            values[key] = copy.deepcopy(value)

    return SchemaRecord(
        values=values,
        id=record.id,
        schema_id=to_schema.id,
        schema_version=to_schema.version,
    )


def migrate_all(
    records: list[SchemaRecord],
    config: SchemaMigrationConfig,
    from_schema: SchemaDefinition,
    to_schema: SchemaDefinition,
) -> MigrationBatchResult:
    """Migrate a batch of records; one failing record never aborts the batch.

    Already-current records are returned unchanged in `migrated`. Failed records
    are reported in `failures` and left out of `migrated`.
    """
    migrated: list[SchemaRecord] = []
    failures: list[RecordMigrationFailure] = []

    for index, record in enumerate(records):
        record_id = getattr(record, "id", None)
        try:
            migrated.append(migrate_record(record, config, from_schema, to_schema))
        except MigrationError as e:
            logger.warning(f"Record {record_id or index} not migrated: {e}")
            failures.append(RecordMigrationFailure(record_id, index, str(e)))
        except Exception as e:
            logger.error(f"Unexpected error migrating record {record_id or index}: {e}")
            failures.append(RecordMigrationFailure(record_id, index, f"Unexpected error: {e}"))

    migrated_count = sum(
        1 for item in migrated if _is_stamped_with(item, to_schema.id, to_schema.version)
    )
    summary = MigrationSummary(
        migrated_count=migrated_count,
        total_count=len(records),
        schema_id=to_schema.id,
        schema_version=to_schema.version,
    )
    logger.info(
        f"Migrated {migrated_count}/{len(records)} records to "
        f"{to_schema.id}@{to_schema.version} ({len(failures)} failed)"
    )
    return MigrationBatchResult(migrated=migrated, failures=failures, summary=summary)
