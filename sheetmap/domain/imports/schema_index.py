"""
Schema index construction.

Walks the schema graph from a root entity and flattens every reachable field
into a ``FieldIndex``: label → dotted path tables plus the descriptor for
each path. The walk is best effort. Missing relation metadata and cycles
stop a branch quietly; only failures of the schema source itself propagate.
"""
import logging
from typing import FrozenSet, Optional, Set

from sheetmap.core.config import settings
from sheetmap.domain.imports.headers import HeaderNormalizer
from sheetmap.domain.imports.models import (
    FieldDescriptor,
    FieldIndex,
    RelationKind,
    SchemaField,
)
from sheetmap.domain.imports.policy import HeaderPolicy, get_header_policy
from sheetmap.domain.imports.schema_source import SchemaSource

logger = logging.getLogger(__name__)

CREATE_SEGMENT = ".create."
CONFLICT_LAST_WINS = "last_wins"
CONFLICT_DROP = "drop"


class _IndexState:
    """Mutable tables for a single build; never shared between builds."""

    def __init__(self, root_entity: str, conflict_policy: str):
        self.index = FieldIndex(root_entity=root_entity)
        self.conflict_policy = conflict_policy
        self.direct_names: Set[str] = set()
        # label -> priority of the registration currently holding it
        self._owner_priority = {}
        self._dropped: Set[str] = set()

    def register_label(self, key: str, path: str, priority: str) -> None:
        if not key:
            return
        by_label = self.index.by_label
        if self.conflict_policy == CONFLICT_DROP:
            if key in self._dropped and self._owner_priority.get(key) == priority:
                return
            existing = by_label.get(key)
            if existing is not None and existing != path and self._owner_priority.get(key) == priority:
                logger.debug("Dropping ambiguous label '%s' (%s vs %s)", key, existing, path)
                del by_label[key]
                self._dropped.add(key)
                return
        by_label[key] = path
        self._owner_priority[key] = priority

    def register_direct_name(self, key: str, path: str) -> None:
        if key in self._dropped and self._owner_priority.get(key) != "direct":
            # A direct name outranks a dropped translation collision
            self._dropped.discard(key)
        self.direct_names.add(key)
        self.register_label(key, path, "direct")

    def register_translation(self, key: str, path: str) -> None:
        if key in self.direct_names:
            return
        self.register_label(key, path, "translation")


class SchemaIndexBuilder:
    """
    Build the label index for a root entity.

    Example:
        builder = SchemaIndexBuilder(source)
        index = builder.build("clients")
        index.by_label["phone"]  # -> "phone"
    """

    def __init__(
        self,
        source: SchemaSource,
        policy: Optional[HeaderPolicy] = None,
        conflict_policy: Optional[str] = None,
    ):
        self.source = source
        self.normalizer = HeaderNormalizer(policy or get_header_policy())
        self.conflict_policy = conflict_policy or settings.label_conflict_policy
        if self.conflict_policy not in (CONFLICT_LAST_WINS, CONFLICT_DROP):
            raise ValueError(f"Unknown label conflict policy '{self.conflict_policy}'")

    def build(self, root_entity: str) -> FieldIndex:
        state = _IndexState(root_entity, self.conflict_policy)
        self._walk(state, root_entity, "", frozenset({root_entity}))
        logger.info(
            "Indexed %d fields for '%s' (%d labels, %d relation labels)",
            len(state.index.fields),
            root_entity,
            len(state.index.by_label),
            len(state.index.by_relation_label),
        )
        return state.index

    def _walk(self, state: _IndexState, entity: str, prefix: str, visited: FrozenSet[str]) -> None:
        for schema_field in self.source.read_fields(entity):
            current_path = prefix + schema_field.name
            self._register_field(state, schema_field, current_path, prefix)

            kind = schema_field.relation_kind
            if kind in (RelationKind.MANY_TO_ONE, RelationKind.ONE_TO_ONE):
                related = schema_field.related_entity
                if not related:
                    logger.debug("No related entity for '%s.%s'; skipping", entity, schema_field.name)
                    continue
                if related in visited:
                    logger.debug("Cycle at '%s' -> '%s'; not descending", current_path, related)
                    continue
                self._walk(state, related, f"{current_path}.", visited | {related})

            elif kind == RelationKind.ONE_TO_MANY:
                relation = self.source.find_one_to_many(entity, schema_field.name)
                if relation is None:
                    logger.debug("No relation metadata for one-to-many '%s.%s'; skipping", entity, schema_field.name)
                    continue
                if relation.owning_entity in visited:
                    logger.debug("Cycle at '%s' -> '%s'; not descending", current_path, relation.owning_entity)
                    continue
                logger.debug(
                    "Descending into '%s' via '%s' (linked by '%s')",
                    relation.owning_entity,
                    current_path,
                    relation.linking_field,
                )
                self._walk(
                    state,
                    relation.owning_entity,
                    f"{current_path}{CREATE_SEGMENT}",
                    visited | {relation.owning_entity},
                )

    def _register_field(self, state: _IndexState, schema_field: SchemaField, current_path: str, prefix: str) -> None:
        normalize = self.normalizer.normalize
        index = state.index

        index.fields[current_path] = FieldDescriptor(
            path=current_path,
            name=schema_field.name,
            type=schema_field.type,
            label_variants=frozenset(t for t in schema_field.translations if t),
            relation_kind=schema_field.relation_kind,
            related_entity=schema_field.related_entity,
        )

        name_key = normalize(schema_field.name)
        state.register_direct_name(name_key, current_path)

        translation_keys = [normalize(t) for t in schema_field.translations if t]

        if CREATE_SEGMENT in prefix:
            if name_key:
                index.by_relation_label[name_key] = current_path
            for key in translation_keys:
                if key:
                    index.by_relation_label[key] = current_path

        for key in translation_keys:
            state.register_translation(key, current_path)

        if prefix:
            state.register_label(normalize(current_path), current_path, "path")


def build_field_index(
    source: SchemaSource,
    root_entity: str,
    policy: Optional[HeaderPolicy] = None,
    conflict_policy: Optional[str] = None,
) -> FieldIndex:
    return SchemaIndexBuilder(source, policy, conflict_policy).build(root_entity)
