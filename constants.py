import os

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "redis")  # "redis" or "memory"

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
REDIS_SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", 5))

ROOM_TTL_SECONDS = int(os.getenv("ROOM_TTL_SECONDS", 24 * 60 * 60))
MEMORY_ROOM_MAX_AGE_SECONDS = int(os.getenv("MEMORY_ROOM_MAX_AGE_SECONDS", 2 * 60 * 60))

DEFAULT_MAX_PLAYERS = int(os.getenv("DEFAULT_MAX_PLAYERS", 8))
MAX_MUTATION_ATTEMPTS = int(os.getenv("MAX_MUTATION_ATTEMPTS", 3))
ROOM_LOCK_TIMEOUT_SECONDS = float(os.getenv("ROOM_LOCK_TIMEOUT_SECONDS", 10))

WAITING_PHASE = "waiting"

# Game fields every fresh room starts with. The server never reads them.
DEFAULT_GAME_STATE = {
    "currentPlayerId": None,
    "round": 1,
    "votingResults": {},
    "detailedVotes": {},
    "playersWhoVoted": [],
    "discussionSkipVotes": [],
    "bunkerSlots": 2,
    "auditLog": [],
    "scenario": None,
}
