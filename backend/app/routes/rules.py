from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db
from ..scoring.engine import RuleValidationError

router = APIRouter(tags=["rules"])


@router.get("/", response_model=list[schemas.RuleRead])
def list_rules(team_id: int = Query(ge=1), db: Session = Depends(get_db)) -> list[schemas.RuleRead]:
    return crud.list_rules(db, team_id)


@router.post("/validate", response_model=schemas.RuleValidationResult)
def check_rule(payload: schemas.RuleCreate, db: Session = Depends(get_db)) -> schemas.RuleValidationResult:
    try:
        errors = crud.validate_rule_draft(db, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return schemas.RuleValidationResult(is_valid=not errors, errors=errors)


@router.post("/", response_model=schemas.RuleRead, status_code=status.HTTP_201_CREATED)
def create_rule(payload: schemas.RuleCreate, db: Session = Depends(get_db)) -> schemas.RuleRead:
    try:
        return crud.create_rule(db, payload)
    except RuleValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/{rule_id}", response_model=schemas.RuleRead)
def get_rule(rule_id: int, db: Session = Depends(get_db)) -> schemas.RuleRead:
    try:
        return crud.get_rule_or_raise(db, rule_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.patch("/{rule_id}/active", response_model=schemas.RuleRead)
def set_rule_active(
    rule_id: int,
    payload: schemas.ActiveUpdate,
    db: Session = Depends(get_db),
) -> schemas.RuleRead:
    try:
        return crud.set_rule_active(db, rule_id, payload.is_active)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/{rule_id}/preview", response_model=list[schemas.PlayerRuleResultRead])
def preview_rule(
    rule_id: int,
    payload: schemas.MatchFactsPayload,
    db: Session = Depends(get_db),
) -> list[schemas.PlayerRuleResultRead]:
    try:
        results = crud.preview_single_rule(db, rule_id, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return [schemas.PlayerRuleResultRead.model_validate(result, from_attributes=True) for result in results]
