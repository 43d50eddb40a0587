# tests/test_routes/test_websockets.py
import time


def test_websocket_receives_changes_in_commit_order(test_client, sample_product_data):
    with test_client.websocket_connect("/ws") as websocket:
        test_client.post("/products", json=sample_product_data)
        test_client.patch("/products/Wireless Mouse", json={"quantity": 35})
        test_client.delete("/products/Wireless Mouse")

        created = websocket.receive_json()
        updated = websocket.receive_json()
        deleted = websocket.receive_json()

    assert created["kind"] == "created"
    assert created["name"] == "Wireless Mouse"
    assert created["payload"]["quantity"] == 50
    assert created["payload"]["price"] == "29.99"

    assert updated["kind"] == "updated"
    assert updated["payload"]["quantity"] == 35
    assert updated["payload"]["category"] == "Electronics"

    assert deleted == {"kind": "deleted", "name": "Wireless Mouse", "payload": {"name": "Wireless Mouse"}}


def test_every_connection_gets_every_event(test_client, sample_product_data):
    with test_client.websocket_connect("/ws") as first, test_client.websocket_connect("/ws") as second:
        test_client.post("/products", json=sample_product_data)

        assert first.receive_json()["kind"] == "created"
        assert second.receive_json()["kind"] == "created"


def test_failed_mutation_sends_nothing(test_client, sample_product_data):
    test_client.post("/products", json=sample_product_data)

    with test_client.websocket_connect("/ws") as websocket:
        assert test_client.post("/products", json=sample_product_data).status_code == 409
        assert test_client.patch("/products/missing-name", json={"quantity": 1}).status_code == 404
        test_client.patch("/products/Wireless Mouse", json={"quantity": 1})

        # The first message is the only successful mutation
        message = websocket.receive_json()

    assert message["kind"] == "updated"
    assert message["payload"]["quantity"] == 1


def test_disconnect_unsubscribes(test_client):
    with test_client.websocket_connect("/ws"):
        assert test_client.get("/health/bus").json()["subscribers"] == 1

    # The relay notices the close on its next read
    for _ in range(50):
        if test_client.get("/health/bus").json()["subscribers"] == 0:
            break
        time.sleep(0.02)
    assert test_client.get("/health/bus").json()["subscribers"] == 0
