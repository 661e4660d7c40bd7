import os

# Importing app.main creates tables and may seed; keep that away from the on-disk database.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_SEED_ON_EMPTY", "false")
