"""Centralized constants for the stackup bootstrap sequencer.

All default ports, compose settings and bootstrap commands are defined
here, not scattered across the runner and probes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Settings file looked up in the project root. Absent file means defaults.
# ---------------------------------------------------------------------------
SETTINGS_FILENAME = "stackup.yaml"

# ---------------------------------------------------------------------------
# Compose project layout
# ---------------------------------------------------------------------------
DEFAULT_PROJECT_NAME = "docker-study"
DEFAULT_COMPOSE_FILE = "docker-compose.yml"

# ---------------------------------------------------------------------------
# Host-mapped ports of the backing services.
# ---------------------------------------------------------------------------
DEFAULT_PORTS: dict[str, int] = {
    "database": 5432,
    "backend": 3001,
    "frontend": 5173,
}

# HTTP paths probed on the API and UI ports
HEALTH_PATHS: dict[str, str] = {
    "backend": "/health",
    "frontend": "/",
}

# ---------------------------------------------------------------------------
# Readiness polling
# ---------------------------------------------------------------------------
DEFAULT_MAX_ATTEMPTS = 30
DEFAULT_POLL_INTERVAL = 2.0  # seconds, fixed delay between attempts
DEFAULT_COMMAND_TIMEOUT = 10.0  # seconds, bounds every captured probe command
HTTP_PROBE_TIMEOUT = 5.0
LOG_FOLLOWER_GRACE = 5.0  # seconds before a terminated log follower is killed

DATABASE_READY_COMMAND: list[str] = ["pg_isready", "-U", "postgres"]

# ---------------------------------------------------------------------------
# Bootstrap commands. Schema commands run inside the API container.
# ---------------------------------------------------------------------------
SCHEMA_SERVICE = "backend"
SCHEMA_PRIMARY_COMMAND = "npx prisma db push --schema=./prisma/schema.prisma"
SCHEMA_FALLBACK_COMMAND = "npx prisma migrate deploy --schema=./prisma/schema.prisma"
CLIENT_GENERATE_COMMAND = "npx prisma generate --schema=./prisma/schema.prisma"

INSTALL_COMMAND = "npm run install:all"
DEPENDENCY_MARKERS: list[str] = [
    "backend/node_modules",
    "frontend/node_modules",
]

# ---------------------------------------------------------------------------
# Exit codes of the operator entry point
# ---------------------------------------------------------------------------
EXIT_OK = 0
EXIT_FATAL = 1
