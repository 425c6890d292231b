"""Concept graph API router."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pensive.database import get_db
from pensive.schemas.concept import ConceptMap, RelatedConcept
from pensive.services.graph.query import ConceptGraphQuery

router = APIRouter()


@router.get("/map", response_model=ConceptMap)
def get_concept_map(
    user_id: str = Query(...),
    abstraction_level: float = Query(0, alias="abstractionLevel"),
    search: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """Concept map filtered by abstraction level and an optional name search."""
    return ConceptGraphQuery(db).concept_map(user_id, abstraction_level, search)


@router.get("/{concept_id}/related", response_model=list[RelatedConcept])
def get_related_concepts(
    concept_id: int,
    user_id: str = Query(...),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Concepts that co-occur with the given one."""
    try:
        return ConceptGraphQuery(db).related_concepts(user_id, concept_id, limit)
    except LookupError:
        raise HTTPException(status_code=404, detail="Concept not found")
