"""Root conftest — shared test configuration."""

import os

# Never reach for the docker-compose Postgres from unit tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("QR_TOKEN_RETRY_MAX_DELAY_MS", "0")
