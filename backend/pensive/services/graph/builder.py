"""Incremental construction of the per-user concept graph."""
import logging
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pensive.config import settings
from pensive.models.concept import Concept
from pensive.models.relationship import (
    DEFAULT_RELATIONSHIP_TYPE,
    INITIAL_STRENGTH,
    STRENGTH_STEP,
    Relationship,
)
from pensive.utils.time import utcnow

logger = logging.getLogger(__name__)

DEFAULT_ENTITY_TYPE = "concept"

ConceptKey = Tuple[str, str]


@dataclass
class GraphIngestResult:
    """Counts of graph writes for one content item."""

    concepts_created: int = 0
    concepts_incremented: int = 0
    relationships_created: int = 0
    relationships_strengthened: int = 0


def normalize_entities(entities: Iterable[Any], limit: int) -> List[ConceptKey]:
    """Trim names, drop blanks, de-duplicate on (name, type) and cap.

    Accepts objects with ``name``/``type`` attributes or dicts. First
    occurrence order is kept.
    """
    keys: List[ConceptKey] = []
    seen = set()
    for entity in entities:
        if isinstance(entity, dict):
            name, entity_type = entity.get("name"), entity.get("type")
        else:
            name, entity_type = getattr(entity, "name", None), getattr(entity, "type", None)
        name = (name or "").strip()
        entity_type = (entity_type or "").strip().lower() or DEFAULT_ENTITY_TYPE
        if not name:
            continue
        key = (name, entity_type)
        if key in seen:
            continue
        seen.add(key)
        keys.append(key)
        if len(keys) >= limit:
            break
    return keys


class ConceptGraphBuilder:
    """Upserts concepts and co-occurrence relationships.

    All writes happen in the caller's transaction; counter updates are single
    ``SET x = x + n`` statements so concurrent jobs never lose increments.
    """

    def __init__(self, db: Session, max_entities: int | None = None):
        self.db = db
        self.max_entities = max_entities or settings.max_entities_per_content

    def ingest(self, user_id: str, content_id: int, entities: Iterable[Any]) -> GraphIngestResult:
        result = GraphIngestResult()
        keys = normalize_entities(entities, self.max_entities)
        if not keys:
            return result

        concept_ids = self._upsert_concepts(user_id, keys, result)
        ids = [concept_ids[key] for key in keys]
        if len(ids) > 1:
            self._upsert_relationships(user_id, content_id, ids, result)

        logger.debug(
            "Graph ingest for content %s: %s concepts created, %s incremented, "
            "%s relationships created, %s strengthened",
            content_id,
            result.concepts_created,
            result.concepts_incremented,
            result.relationships_created,
            result.relationships_strengthened,
        )
        return result

    def _upsert_concepts(
        self,
        user_id: str,
        keys: List[ConceptKey],
        result: GraphIngestResult,
    ) -> Dict[ConceptKey, int]:
        wanted = set(keys)
        rows = self.db.execute(
            select(Concept.id, Concept.name, Concept.type).where(
                Concept.user_id == user_id,
                Concept.name.in_({name for name, _ in keys}),
            )
        ).all()
        concept_ids = {
            (row.name, row.type): row.id for row in rows if (row.name, row.type) in wanted
        }

        if concept_ids:
            self._increment_concepts(list(concept_ids.values()))
            result.concepts_incremented += len(concept_ids)

        missing = [key for key in keys if key not in concept_ids]
        if not missing:
            return concept_ids

        new_concepts = [
            Concept(user_id=user_id, name=name, type=entity_type, frequency=1)
            for name, entity_type in missing
        ]
        try:
            with self.db.begin_nested():
                self.db.add_all(new_concepts)
        except IntegrityError:
            # Another job inserted some of them first; settle one at a time.
            for name, entity_type in missing:
                concept_ids[(name, entity_type)] = self._insert_or_increment_concept(
                    user_id, name, entity_type, result
                )
            return concept_ids

        for concept in new_concepts:
            concept_ids[(concept.name, concept.type)] = concept.id
        result.concepts_created += len(new_concepts)
        return concept_ids

    def _increment_concepts(self, concept_ids: List[int]) -> None:
        self.db.execute(
            update(Concept)
            .where(Concept.id.in_(concept_ids))
            .values(frequency=Concept.frequency + 1, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    def _insert_or_increment_concept(
        self,
        user_id: str,
        name: str,
        entity_type: str,
        result: GraphIngestResult,
    ) -> int:
        concept = Concept(user_id=user_id, name=name, type=entity_type, frequency=1)
        try:
            with self.db.begin_nested():
                self.db.add(concept)
            result.concepts_created += 1
            return concept.id
        except IntegrityError:
            concept_id = self.db.execute(
                select(Concept.id).where(
                    Concept.user_id == user_id,
                    Concept.name == name,
                    Concept.type == entity_type,
                )
            ).scalar_one()
            self._increment_concepts([concept_id])
            result.concepts_incremented += 1
            return concept_id

    def _upsert_relationships(
        self,
        user_id: str,
        content_id: int,
        concept_ids: List[int],
        result: GraphIngestResult,
    ) -> None:
        directed = []
        for a, b in combinations(concept_ids, 2):
            directed.extend([(a, b), (b, a)])

        rows = self.db.execute(
            select(Relationship.id, Relationship.from_concept_id, Relationship.to_concept_id).where(
                Relationship.user_id == user_id,
                Relationship.content_id == content_id,
                Relationship.from_concept_id.in_(concept_ids),
            )
        ).all()
        existing = {(row.from_concept_id, row.to_concept_id): row.id for row in rows}

        repeat_ids = [existing[pair] for pair in directed if pair in existing]
        if repeat_ids:
            self._strengthen(repeat_ids)
            result.relationships_strengthened += len(repeat_ids)

        missing = [pair for pair in directed if pair not in existing]
        if not missing:
            return

        new_rows = [self._new_relationship(user_id, content_id, pair) for pair in missing]
        try:
            with self.db.begin_nested():
                self.db.add_all(new_rows)
        except IntegrityError:
            for pair in missing:
                self._insert_or_strengthen(user_id, content_id, pair, result)
            return
        result.relationships_created += len(new_rows)

    @staticmethod
    def _new_relationship(user_id: str, content_id: int, pair: Tuple[int, int]) -> Relationship:
        return Relationship(
            user_id=user_id,
            from_concept_id=pair[0],
            to_concept_id=pair[1],
            content_id=content_id,
            strength=INITIAL_STRENGTH,
            type=DEFAULT_RELATIONSHIP_TYPE,
        )

    def _strengthen(self, relationship_ids: List[int]) -> None:
        self.db.execute(
            update(Relationship)
            .where(Relationship.id.in_(relationship_ids))
            .values(strength=Relationship.strength + STRENGTH_STEP)
            .execution_options(synchronize_session=False)
        )

    def _insert_or_strengthen(
        self,
        user_id: str,
        content_id: int,
        pair: Tuple[int, int],
        result: GraphIngestResult,
    ) -> None:
        try:
            with self.db.begin_nested():
                self.db.add(self._new_relationship(user_id, content_id, pair))
            result.relationships_created += 1
        except IntegrityError:
            relationship_id = self.db.execute(
                select(Relationship.id).where(
                    Relationship.user_id == user_id,
                    Relationship.from_concept_id == pair[0],
                    Relationship.to_concept_id == pair[1],
                    Relationship.content_id == content_id,
                )
            ).scalar_one()
            self._strengthen([relationship_id])
            result.relationships_strengthened += 1
