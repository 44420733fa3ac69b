from conftest import make_board, make_card, make_list


def test_create_list(client, alice):
    board = make_board(client, alice)
    resp = client.post("/api/lists", json={"board_id": board["id"], "title": "Todo"}, headers=alice)
    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] == "1"
    assert body["board_id"] == board["id"]
    assert body["order_index"] == 1


def test_create_list_accepts_numeric_board_id(client, alice):
    board = make_board(client, alice)
    resp = client.post("/api/lists", json={"board_id": int(board["id"]), "title": "Todo"}, headers=alice)
    assert resp.status_code == 201


def test_create_list_validation(client, alice):
    board = make_board(client, alice)
    assert client.post("/api/lists", json={"title": "x"}, headers=alice).status_code == 400
    assert client.post("/api/lists", json={"board_id": board["id"]}, headers=alice).status_code == 400


def test_create_list_on_missing_or_foreign_board(client, alice, bob):
    board = make_board(client, alice)
    assert client.post("/api/lists", json={"board_id": "999", "title": "x"}, headers=alice).status_code == 404
    assert client.post("/api/lists", json={"board_id": board["id"], "title": "x"}, headers=bob).status_code == 404
    assert client.get(f"/api/boards/{board['id']}/lists", headers=alice).json() == []


def test_lists_append_in_order(client, alice):
    board = make_board(client, alice)
    created = [make_list(client, alice, board["id"], title) for title in ("L1", "L2", "L3")]
    assert [item["order_index"] for item in created] == [1, 2, 3]

    listed = client.get(f"/api/boards/{board['id']}/lists", headers=alice).json()
    assert [item["title"] for item in listed] == ["L1", "L2", "L3"]
    assert all(isinstance(item["id"], str) for item in listed)


def test_lists_route_under_lists_prefix(client, alice):
    board = make_board(client, alice)
    make_list(client, alice, board["id"], "Todo")
    resp = client.get(f"/api/lists/{board['id']}/lists", headers=alice)
    assert resp.status_code == 200
    assert [item["title"] for item in resp.json()] == ["Todo"]


def test_append_follows_highest_index(client, alice):
    board = make_board(client, alice)
    first = make_list(client, alice, board["id"], "L1")
    client.put(f"/api/lists/{first['id']}", json={"order_index": 10}, headers=alice)
    assert make_list(client, alice, board["id"], "L2")["order_index"] == 11


def test_append_positions_are_per_board(client, alice):
    one = make_board(client, alice, "One")
    two = make_board(client, alice, "Two")
    make_list(client, alice, one["id"])
    make_list(client, alice, one["id"])
    assert make_list(client, alice, two["id"])["order_index"] == 1


def test_explicit_reposition_is_verbatim(client, alice):
    board = make_board(client, alice)
    l1, l2, l3 = (make_list(client, alice, board["id"], t) for t in ("L1", "L2", "L3"))

    resp = client.put(f"/api/lists/{l3['id']}", json={"order_index": 1}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["order_index"] == 1

    listed = client.get(f"/api/boards/{board['id']}/lists", headers=alice).json()
    # No renumbering: L1 and L3 now share index 1 and L1 wins by id.
    assert [(item["title"], item["order_index"]) for item in listed] == [("L1", 1), ("L3", 1), ("L2", 2)]


def test_update_list_title(client, alice):
    board = make_board(client, alice)
    todo = make_list(client, alice, board["id"])
    resp = client.put(f"/api/lists/{todo['id']}", json={"title": "Doing"}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["title"] == "Doing"
    assert resp.json()["order_index"] == todo["order_index"]


def test_update_list_validation(client, alice):
    board = make_board(client, alice)
    todo = make_list(client, alice, board["id"])
    path = f"/api/lists/{todo['id']}"
    assert client.put(path, json={}, headers=alice).status_code == 400
    assert client.put(path, json={"order_index": None}, headers=alice).status_code == 400
    assert client.put(path, json={"order_index": "first"}, headers=alice).status_code == 400


def test_list_cannot_change_board(client, alice):
    one = make_board(client, alice, "One")
    two = make_board(client, alice, "Two")
    todo = make_list(client, alice, one["id"])
    resp = client.put(f"/api/lists/{todo['id']}", json={"title": "T", "board_id": two["id"]}, headers=alice)
    assert resp.status_code == 200
    assert resp.json()["board_id"] == one["id"]


def test_foreign_list_read_is_forbidden_writes_not_found(client, alice, bob):
    board = make_board(client, alice)
    todo = make_list(client, alice, board["id"])
    path = f"/api/lists/{todo['id']}"

    assert client.get(path, headers=bob).status_code == 403
    assert client.put(path, json={"title": "Mine"}, headers=bob).status_code == 404
    assert client.delete(path, headers=bob).status_code == 404
    assert client.get(path, headers=alice).json()["title"] == "Todo"


def test_missing_list(client, alice):
    assert client.get("/api/lists/999", headers=alice).status_code == 404
    assert client.put("/api/lists/999", json={"title": "x"}, headers=alice).status_code == 404
    assert client.delete("/api/lists/999", headers=alice).status_code == 404


def test_delete_list_cascades_cards(client, alice):
    board = make_board(client, alice)
    todo = make_list(client, alice, board["id"])
    done = make_list(client, alice, board["id"], "Done")
    doomed = make_card(client, alice, todo["id"])
    kept = make_card(client, alice, done["id"])

    assert client.delete(f"/api/lists/{todo['id']}", headers=alice).status_code == 200
    assert client.get(f"/api/cards/{doomed['id']}", headers=alice).status_code == 404
    assert client.get(f"/api/cards/{kept['id']}", headers=alice).status_code == 200
    listed = client.get(f"/api/boards/{board['id']}/lists", headers=alice).json()
    assert [item["id"] for item in listed] == [done["id"]]
