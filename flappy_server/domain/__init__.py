"""Domain layer (pure logic).

- Keep pricing rules and static game data here.
- Avoid I/O: no HTTP clients, no FastAPI, no environment access.
"""
