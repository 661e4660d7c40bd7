from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db

router = APIRouter(tags=["clubs"])


@router.get("/", response_model=list[schemas.ClubRead])
def list_clubs(db: Session = Depends(get_db)) -> list[schemas.ClubRead]:
    return crud.get_clubs(db)


@router.post("/", response_model=schemas.ClubRead, status_code=status.HTTP_201_CREATED)
def create_club(club: schemas.ClubCreate, db: Session = Depends(get_db)) -> schemas.ClubRead:
    try:
        return crud.create_club(db, club)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
