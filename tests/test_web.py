import pytest

from white_elephant.web import USER_HEADER, create_app

from conftest import JoinOrder


@pytest.fixture
def client(store):
    app = create_app(store, rng=JoinOrder())
    app.config["TESTING"] = True
    return app.test_client()


def as_user(user):
    return {USER_HEADER: user}


def test_requires_user(client):
    res = client.get("/games")
    assert res.status_code == 401
    assert res.get_json()["error"] == "unauthorized"


def test_status_is_public(client):
    res = client.get("/status")
    assert res.status_code == 200
    assert res.get_json()["total_games"] == 0


def test_full_game_over_http(client):
    res = client.post("/games", json={"name": "Office party"}, headers=as_user("alice"))
    assert res.status_code == 201
    game = res.get_json()["game"]
    game_id = game["id"]

    res = client.get(f"/games/by-code/{game['game_code']}")
    assert res.status_code == 200

    res = client.post(f"/games/{game_id}/join", json={"game_code": "nope"}, headers=as_user("bob"))
    assert res.status_code == 400
    assert res.get_json()["error"] == "invalid_game_code"
    res = client.post(f"/games/{game_id}/join", json={"game_code": game["game_code"]}, headers=as_user("bob"))
    assert res.status_code == 200

    gifts = {}
    for user in ("alice", "bob"):
        res = client.post("/gifts", json={"game_id": game_id, "url": f"https://shop.example/{user}"},
                          headers=as_user(user))
        assert res.status_code == 201
        gifts[user] = res.get_json()["id"]

    res = client.post(f"/games/{game_id}/start", headers=as_user("bob"))
    assert res.status_code == 403
    res = client.post(f"/games/{game_id}/start", headers=as_user("alice"))
    assert res.status_code == 200
    assert res.get_json()["turn_order"] == ["alice", "bob"]

    res = client.post(f"/games/{game_id}/reveal", json={}, headers=as_user("alice"))
    assert res.status_code == 400
    res = client.post(f"/games/{game_id}/reveal", json={"gift_id": gifts["alice"]}, headers=as_user("bob"))
    assert res.status_code == 403
    assert res.get_json()["error"] == "not_your_turn"

    res = client.post(f"/games/{game_id}/reveal", json={"gift_id": gifts["bob"]}, headers=as_user("alice"))
    assert res.status_code == 200
    res = client.post(f"/games/{game_id}/steal", json={"gift_id": gifts["bob"]}, headers=as_user("bob"))
    assert res.status_code == 200
    assert res.get_json()["current_turn"] == 1

    res = client.post(f"/games/{game_id}/steal", json={"gift_id": gifts["bob"]}, headers=as_user("alice"))
    assert res.get_json()["error"] == "must_reveal_first"

    res = client.post(f"/games/{game_id}/end", headers=as_user("alice"))
    assert res.status_code == 409
    assert res.get_json()["error"] == "not_ready"

    res = client.post(f"/games/{game_id}/reveal", json={"gift_id": gifts["alice"]}, headers=as_user("alice"))
    assert res.status_code == 200

    res = client.get(f"/games/{game_id}", headers=as_user("bob"))
    view = res.get_json()
    assert view["ready_to_end"] is True
    assert res.status_code == 200

    res = client.get(f"/games/{game_id}", headers=as_user("mallory"))
    assert res.status_code == 403

    res = client.post(f"/games/{game_id}/end", headers=as_user("alice"))
    assert res.status_code == 200
    assert res.get_json()["status"] == "ended"

    res = client.get("/games", headers=as_user("bob"))
    assert [g["id"] for g in res.get_json()["games"]] == [game_id]


def test_gift_routes(client):
    game = client.post("/games", json={"name": "Party"}, headers=as_user("alice")).get_json()["game"]
    gift = client.post("/gifts", json={"game_id": game["id"], "url": "https://x"},
                       headers=as_user("alice")).get_json()

    assert client.get(f"/gifts/{gift['id']}", headers=as_user("bob")).status_code == 403
    res = client.put(f"/gifts/{gift['id']}", json={"url": "https://y", "title": "Mug"}, headers=as_user("alice"))
    assert res.status_code == 200
    assert res.get_json()["title"] == "Mug"
    assert client.delete(f"/gifts/{gift['id']}", headers=as_user("alice")).status_code == 200
    assert client.get(f"/gifts/{gift['id']}", headers=as_user("alice")).status_code == 404
    assert client.post("/gifts", json={"url": "https://x"}, headers=as_user("alice")).status_code == 400


def test_unknown_route_is_not_found(client):
    assert client.get("/nope").status_code == 404
    assert client.post("/games/x/unknown").status_code == 404
    assert client.get("/nope", headers=as_user("alice")).status_code == 404
