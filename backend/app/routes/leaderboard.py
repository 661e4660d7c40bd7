from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..database import get_db

router = APIRouter(tags=["leaderboard"])


@router.get("/", response_model=list[schemas.LeaderboardRow])
def leaderboard(
    point_type: schemas.PointTypeName = Query(default="TEAM"),
    club_id: int | None = Query(default=None, ge=1),
    team_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> list[schemas.LeaderboardRow]:
    return crud.build_leaderboard(db, point_type=point_type, club_id=club_id, team_id=team_id)
