from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .. import crud, models, schemas, serializers
from ..database import get_db

router = APIRouter(tags=["variables"])


def _to_read(variable: models.Variable) -> schemas.VariableRead:
    return serializers.variable_to_read(serializers.variable_from_model(variable), variable)


@router.get("/", response_model=list[schemas.VariableRead])
def list_variables(team_id: int = Query(ge=1), db: Session = Depends(get_db)) -> list[schemas.VariableRead]:
    try:
        return crud.list_variables(db, team_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.post("/", response_model=schemas.VariableRead, status_code=status.HTTP_201_CREATED)
def create_variable(payload: schemas.VariableCreate, db: Session = Depends(get_db)) -> schemas.VariableRead:
    try:
        variable = crud.create_variable(db, payload)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return _to_read(variable)


@router.patch("/{variable_id}/active", response_model=schemas.VariableRead)
def set_variable_active(
    variable_id: int,
    payload: schemas.ActiveUpdate,
    db: Session = Depends(get_db),
) -> schemas.VariableRead:
    try:
        variable = crud.set_variable_active(db, variable_id, payload.is_active)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return _to_read(variable)


@router.delete("/{variable_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_variable(variable_id: int, db: Session = Depends(get_db)) -> Response:
    try:
        crud.delete_variable(db, variable_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
