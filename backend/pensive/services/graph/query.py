"""Read side of the concept graph."""
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pensive.models.concept import Concept
from pensive.models.relationship import INITIAL_STRENGTH, STRENGTH_STEP, Relationship
from pensive.schemas.concept import ConceptEdge, ConceptMap, ConceptNode, RelatedConcept


def frequency_threshold(abstraction_level: float, max_frequency: int) -> int:
    """Minimum concept frequency shown at a 0-100 abstraction level."""
    level = min(100.0, max(0.0, float(abstraction_level)))
    return max(1, int(level * max_frequency // 100))


def aggregate_strength(row_strengths: List[float]) -> float:
    """Edge strength over the per-content rows of one directed pair.

    The first co-occurrence counts 0.5 and every further one 0.1, whether it
    came from another content item or a repeat within the same one.
    """
    if not row_strengths:
        return 0.0
    extra = sum(strength - INITIAL_STRENGTH for strength in row_strengths)
    return round(INITIAL_STRENGTH + STRENGTH_STEP * (len(row_strengths) - 1) + extra, 6)


class ConceptGraphQuery:
    """Concept map and neighborhood queries for one user."""

    def __init__(self, db: Session):
        self.db = db

    def concept_map(
        self,
        user_id: str,
        abstraction_level: float = 0,
        search_query: Optional[str] = None,
    ) -> ConceptMap:
        max_frequency = self.db.execute(
            select(func.max(Concept.frequency)).where(Concept.user_id == user_id)
        ).scalar()
        if not max_frequency:
            return ConceptMap(nodes=[], edges=[], min_frequency=1, max_frequency=0)

        threshold = frequency_threshold(abstraction_level, max_frequency)
        stmt = select(Concept).where(
            Concept.user_id == user_id,
            Concept.frequency >= threshold,
        )
        search = (search_query or "").strip()
        if search:
            stmt = stmt.where(func.lower(Concept.name).contains(search.lower(), autoescape=True))
        concepts = self.db.execute(
            stmt.order_by(Concept.frequency.desc(), Concept.name)
        ).scalars().all()

        nodes = [
            ConceptNode(
                id=concept.id,
                label=concept.name,
                type=concept.type,
                frequency=concept.frequency,
                density=round(concept.frequency / max_frequency * 100, 2),
            )
            for concept in concepts
        ]
        edges = self._edges_between([concept.id for concept in concepts], user_id)
        return ConceptMap(
            nodes=nodes,
            edges=edges,
            min_frequency=threshold,
            max_frequency=max_frequency,
        )

    def _edges_between(self, concept_ids: List[int], user_id: str) -> List[ConceptEdge]:
        if len(concept_ids) < 2:
            return []
        rows = self.db.execute(
            select(Relationship)
            .where(
                Relationship.user_id == user_id,
                Relationship.from_concept_id.in_(concept_ids),
                Relationship.to_concept_id.in_(concept_ids),
            )
            .order_by(Relationship.id)
        ).scalars().all()

        grouped: Dict[Tuple[int, int], List[Relationship]] = defaultdict(list)
        for row in rows:
            grouped[(row.from_concept_id, row.to_concept_id)].append(row)

        return [
            ConceptEdge(
                source=source,
                target=target,
                type=pair_rows[0].type,
                strength=aggregate_strength([row.strength for row in pair_rows]),
                content_ids=sorted({row.content_id for row in pair_rows}),
            )
            for (source, target), pair_rows in grouped.items()
        ]

    def related_concepts(self, user_id: str, concept_id: int, limit: int = 10) -> List[RelatedConcept]:
        """Concepts that co-occur with ``concept_id``, most frequent first.

        Raises:
            LookupError: the concept does not exist for this user
        """
        concept = self.db.execute(
            select(Concept.id).where(Concept.id == concept_id, Concept.user_id == user_id)
        ).scalar_one_or_none()
        if concept is None:
            raise LookupError(f"Concept {concept_id} not found")

        neighbor_ids = select(Relationship.to_concept_id).where(
            Relationship.user_id == user_id,
            Relationship.from_concept_id == concept_id,
        )
        neighbors = self.db.execute(
            select(Concept)
            .where(Concept.id.in_(neighbor_ids), Concept.id != concept_id)
            .order_by(Concept.frequency.desc(), Concept.name)
            .limit(limit)
        ).scalars().all()
        return [
            RelatedConcept(
                id=neighbor.id,
                name=neighbor.name,
                type=neighbor.type,
                frequency=neighbor.frequency,
            )
            for neighbor in neighbors
        ]
