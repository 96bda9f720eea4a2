"""
Room state coordination.

- lifecycle: create / fetch / delete / expire rooms, atomic read-modify-write
- membership: join, reconnect, leave, host election
- merge: shallow last-write-wins game state updates
- directory: lobby listing of joinable rooms
- coordinator: the facade the routers call
"""
