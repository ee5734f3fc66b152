def test_paid_session_flow(client, paid):
    res = client.post("/api/game/session", headers=paid("/api/game/session"))
    assert res.status_code == 200
    data = res.json()
    assert data["message"] == "Payment accepted! Press SPACE to start your game."
    session_id = data["sessionId"]

    res = client.get(f"/api/game/session/{session_id}")
    assert res.status_code == 200
    assert res.json() == {"valid": True, "sessionId": session_id, "used": False}

    res = client.post("/api/game/score", json={"sessionId": session_id, "score": 12})
    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "score": 12,
        "message": "Game over! Insert coin to play again.",
    }

    res = client.get(f"/api/game/session/{session_id}")
    assert res.status_code == 410
    assert res.json() == {"valid": False, "message": "Game already played"}


def test_score_twice_is_rejected(client, paid):
    session_id = client.post("/api/game/session", headers=paid("/api/game/session")).json()["sessionId"]
    assert client.post("/api/game/score", json={"sessionId": session_id, "score": 3}).status_code == 200
    res = client.post("/api/game/score", json={"sessionId": session_id, "score": 300})
    assert res.status_code == 401
    assert res.json() == {"error": "Game already completed"}


def test_score_with_unknown_session(client):
    res = client.post("/api/game/score", json={"sessionId": "not-a-session", "score": 5})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid session"}


def test_score_without_session_id(client):
    res = client.post("/api/game/score", json={"score": 5})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid session"}


def test_score_with_non_string_session_id(client, paid):
    session_id = client.post("/api/game/session", headers=paid("/api/game/session")).json()["sessionId"]
    for bad_id in (123, [session_id], {"id": session_id}):
        res = client.post("/api/game/score", json={"sessionId": bad_id, "score": 5})
        assert res.status_code == 401
        assert res.json() == {"error": "Invalid session"}
    assert client.get(f"/api/game/session/{session_id}").json()["used"] is False


def test_unknown_session_validation(client):
    res = client.get("/api/game/session/unknown")
    assert res.status_code == 404
    assert res.json() == {"valid": False, "message": "Session not found"}


def test_paid_session_records_payment_reference(client, paid, ledger):
    session_id = client.post("/api/game/session", headers=paid("/api/game/session")).json()["sessionId"]
    payment_id = ledger.get_session(session_id).payment_id
    assert payment_id is not None
    assert len(payment_id) == 64


def test_deposit_and_credit_sessions(client, paid, ledger):
    res = client.post("/api/deposit", headers=paid("/api/deposit"))
    assert res.status_code == 200
    deposit = res.json()
    assert deposit["credits"] == 1000

    res = client.get(f"/api/deposit/{deposit['depositId']}")
    assert res.json() == {"depositId": deposit["depositId"], "credits": 1000}

    res = client.post("/api/game/session/credit", json={"depositId": deposit["depositId"]})
    assert res.status_code == 200
    body = res.json()
    assert body["creditsRemaining"] == 999
    assert ledger.get_session(body["sessionId"]).payment_id is None

    res = client.get(f"/api/game/session/{body['sessionId']}")
    assert res.json()["valid"] is True

    res = client.get(f"/api/deposit/{deposit['depositId']}")
    assert res.json()["credits"] == 999


def test_exhausted_deposit(client, paid, ledger):
    deposit_id = client.post("/api/deposit", headers=paid("/api/deposit")).json()["depositId"]
    ledger.get_deposit(deposit_id).credits = 1

    assert client.post("/api/game/session/credit", json={"depositId": deposit_id}).status_code == 200
    res = client.post("/api/game/session/credit", json={"depositId": deposit_id})
    assert res.status_code == 400
    assert res.json() == {"error": "No credits available"}
    assert client.get(f"/api/deposit/{deposit_id}").json()["credits"] == 0


def test_credit_session_with_unknown_deposit(client):
    res = client.post("/api/game/session/credit", json={"depositId": "missing"})
    assert res.status_code == 400
    assert res.json() == {"error": "No credits available"}


def test_credit_session_with_non_string_deposit_id(client, paid, ledger):
    deposit_id = client.post("/api/deposit", headers=paid("/api/deposit")).json()["depositId"]
    for bad_id in (123, [deposit_id], {"id": deposit_id}):
        res = client.post("/api/game/session/credit", json={"depositId": bad_id})
        assert res.status_code == 400
        assert res.json() == {"error": "No credits available"}
    assert ledger.get_deposit(deposit_id).credits == 1000


def test_unknown_deposit(client):
    res = client.get("/api/deposit/missing")
    assert res.status_code == 404
    assert res.json() == {"error": "Deposit not found"}


def test_continue_game(client, paid, ledger):
    res = client.post("/api/game/continue", json={"score": 21}, headers=paid("/api/game/continue"))
    assert res.status_code == 200
    data = res.json()
    assert data["continueScore"] == 21
    assert data["message"].startswith("Pay to win activated!")
    assert ledger.get_session(data["sessionId"]).continue_score == 21


def test_continue_with_invalid_score(client, paid, ledger):
    for score in (-1, "ten", None):
        res = client.post("/api/game/continue", json={"score": score}, headers=paid("/api/game/continue"))
        assert res.status_code == 400
        assert res.json() == {"error": "Invalid score"}
    assert ledger.session_count == 0


def test_continue_with_invalid_score_is_not_settled(client, paid, verifier):
    client.post("/api/game/continue", json={"score": -5}, headers=paid("/api/game/continue"))
    assert len(verifier.verified) == 1
    assert verifier.settled == []


def test_leaderboard(client):
    res = client.get("/api/leaderboard")
    assert res.status_code == 200
    board = res.json()["leaderboard"]
    assert [entry["rank"] for entry in board] == [1, 2, 3]
    assert board[0] == {"rank": 1, "score": 42, "player": "0x1234...5678"}


def test_health(client):
    res = client.get("/api/health")
    assert res.json() == {
        "status": "ok",
        "payTo": "0x1111111111111111111111111111111111111111",
        "network": "base-sepolia",
        "gamePrice": "$0.001",
    }


def test_debug_echo(client):
    res = client.get("/api/test", headers={"X-Debug": "yes"})
    data = res.json()
    assert data["message"] == "Server is working!"
    assert data["headers"]["x-debug"] == "yes"


def test_cors_allows_frontend(client):
    res = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
    assert res.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert res.headers["access-control-allow-credentials"] == "true"
