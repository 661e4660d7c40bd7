from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db

router = APIRouter(tags=["profiles"])


@router.get("/", response_model=list[schemas.ProfileRead])
def list_profiles(
    club_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> list[schemas.ProfileRead]:
    return crud.list_profiles(db, club_id=club_id)


@router.post("/", response_model=schemas.ProfileRead, status_code=status.HTTP_201_CREATED)
def create_profile(payload: schemas.ProfileCreate, db: Session = Depends(get_db)) -> schemas.ProfileRead:
    try:
        return crud.create_profile(db, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{profile_id}", response_model=schemas.ProfileRead)
def get_profile(profile_id: int, db: Session = Depends(get_db)) -> schemas.ProfileRead:
    try:
        return crud.get_profile_or_raise(db, profile_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
