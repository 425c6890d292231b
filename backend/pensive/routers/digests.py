"""Digests API router."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pensive.database import get_db
from pensive.models.digest import Digest
from pensive.schemas.digest import Digest as DigestSchema

router = APIRouter()


@router.get("", response_model=list[DigestSchema])
def list_digests(
    user_id: str = Query(...),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """A user's digests, newest first."""
    return (
        db.query(Digest)
        .filter(Digest.user_id == user_id)
        .order_by(Digest.generated_at.desc(), Digest.id.desc())
        .limit(limit)
        .all()
    )


@router.get("/{digest_id}", response_model=DigestSchema)
def get_digest(digest_id: int, db: Session = Depends(get_db)):
    """Get a digest by ID."""
    digest = db.query(Digest).filter(Digest.id == digest_id).first()
    if not digest:
        raise HTTPException(status_code=404, detail="Digest not found")
    return digest
