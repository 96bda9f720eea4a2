ROOM_PREFIX = "bunker:room:" # prefix scanned by the sweep and the lobby listing
ROOM_KEY = ROOM_PREFIX + "{room_id}" # room id - JSON room record

# **Example `bunker:room:{id}` value (JSON string)**
# - `roomId` = `{roomId}`
# - `players` = [{"id", "name", "lastSeen", ...opaque per-player fields}]
# - `hostId` = id of the earliest remaining joiner, or null
# - `phase` = "waiting" | any opaque game phase
# - `maxPlayers`, `lastUpdate`, `createdAt` = integers (timestamps in ms)
# - `version` = integer bumped on every write (compare-and-swap token)
# - everything else = opaque game state (`round`, `votingResults`, `scenario`, ...)
