import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import Base, SessionLocal, engine
from .logging import setup_logging
from .models import Club
from .routes import clubs, leaderboard, matches, players, profiles, rules, teams, variables

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
    description=(
        "Club and team scoring APIs: condition-based point rules, team and club "
        "rules profiles, and per-match point ledgers."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Base.metadata.create_all(bind=engine)


def seed_if_empty() -> None:
    if not settings.auto_seed_on_empty:
        return

    db = SessionLocal()
    try:
        has_clubs = db.query(Club.id).first() is not None
    finally:
        db.close()

    if has_clubs:
        return

    from seed import seed

    logger.info("Database is empty; seeding demo club")
    seed()


seed_if_empty()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(clubs.router, prefix="/clubs")
app.include_router(teams.router, prefix="/teams")
app.include_router(players.router, prefix="/players")
app.include_router(matches.router, prefix="/matches")
app.include_router(rules.router, prefix="/rules")
app.include_router(variables.router, prefix="/variables")
app.include_router(profiles.router, prefix="/profiles")
app.include_router(leaderboard.router, prefix="/leaderboard")
