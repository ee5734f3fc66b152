# Placeholder standings until scores are persisted somewhere.
MOCK_LEADERBOARD = [
    {"rank": 1, "score": 42, "player": "0x1234...5678"},
    {"rank": 2, "score": 38, "player": "0xabcd...efgh"},
    {"rank": 3, "score": 35, "player": "0x9876...5432"},
]


def get_leaderboard() -> list[dict]:
    return [dict(entry) for entry in MOCK_LEADERBOARD]
