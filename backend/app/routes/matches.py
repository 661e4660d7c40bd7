from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas, serializers
from ..database import get_db

router = APIRouter(tags=["matches"])


@router.get("/", response_model=list[schemas.MatchRead])
def list_matches(
    team_id: int | None = Query(default=None, ge=1),
    status_filter: schemas.MatchStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
) -> list[schemas.MatchRead]:
    return crud.list_matches(db, team_id=team_id, status=status_filter)


@router.post("/", response_model=schemas.MatchRead, status_code=status.HTTP_201_CREATED)
def create_match(payload: schemas.MatchCreate, db: Session = Depends(get_db)) -> schemas.MatchRead:
    try:
        return crud.create_match(db, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{match_id}", response_model=schemas.CompletedMatchRead)
def get_match(match_id: int, db: Session = Depends(get_db)) -> schemas.CompletedMatchRead:
    try:
        match = crud.get_match_or_raise(db, match_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return serializers.completed_match_to_read(match)


@router.post("/{match_id}/complete", response_model=schemas.CompletedMatchRead)
def complete_match(
    match_id: int,
    payload: schemas.MatchCompletion,
    db: Session = Depends(get_db),
) -> schemas.CompletedMatchRead:
    try:
        match = crud.complete_match(db, match_id, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except crud.CompletionError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc

    return serializers.completed_match_to_read(match)


@router.post("/{match_id}/preview", response_model=list[schemas.PlayerRuleResultRead])
def preview_match(
    match_id: int,
    payload: schemas.MatchFactsPayload,
    profile_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> list[schemas.PlayerRuleResultRead]:
    try:
        results = crud.preview_match_points(db, match_id, payload, profile_id=profile_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return [schemas.PlayerRuleResultRead.model_validate(result, from_attributes=True) for result in results]


@router.get("/{match_id}/ledger", response_model=list[schemas.LedgerEntryRead])
def match_ledger(
    match_id: int,
    point_type: schemas.PointTypeName | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[schemas.LedgerEntryRead]:
    try:
        return crud.get_match_ledger(db, match_id, point_type=point_type)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/{match_id}/assignments", response_model=list[schemas.EditableAssignmentRead])
def editable_assignments(match_id: int, db: Session = Depends(get_db)) -> list[schemas.EditableAssignmentRead]:
    try:
        assignments = crud.get_editable_assignments(db, match_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return [schemas.EditableAssignmentRead.model_validate(item, from_attributes=True) for item in assignments]
