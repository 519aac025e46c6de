"""
Integration tests for API endpoints using a SQLite test DB.
"""
import pytest

from gfscore.services import votes as votes_service


def _create(client, name="Pan Rústico", **vote):
    body = {"name": name, "user_id": "alice", "safety": 80, "taste": 70}
    body.update(vote)
    r = client.post("/products", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def _vote(client, product_id, **vote):
    return client.post("/votes", json={"product_id": product_id, **vote})


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestCreateProduct:
    def test_create_returns_first_vote_aggregate(self, client):
        body = _create(client, price=3)
        product = body["product"]
        assert body["is_edit"] is False
        assert product["name"] == "Pan Rústico"
        assert product["vote_count"] == 1
        assert product["registered_votes"] == 1
        assert product["average_safety"] == pytest.approx(80.0)
        assert product["avg_price"] == pytest.approx(3.0)
        assert product["created_by"] == "alice"

    def test_name_is_trimmed(self, client):
        body = _create(client, name="  Galletas  ")
        assert body["product"]["name"] == "Galletas"

    def test_duplicate_name_conflict(self, client):
        _create(client, name="Duplicado")
        r = client.post("/products", json={
            "name": "Duplicado", "anonymous_id": "anon-1", "safety": 10, "taste": 10,
        })
        assert r.status_code == 409
        assert r.json()["code"] == "PRODUCT_ALREADY_EXISTS"

    def test_duplicate_name_caught_at_insert(self, client, monkeypatch):
        _create(client, name="Carrera")
        # Same name arriving after the existence check has already passed.
        monkeypatch.setattr(votes_service, "_name_taken", lambda db, name: False)

        r = client.post("/products", json={
            "name": "Carrera", "user_id": "bob", "safety": 40, "taste": 40,
        })
        assert r.status_code == 409
        assert r.json()["code"] == "PRODUCT_ALREADY_EXISTS"

        listed = client.get("/products").json()
        assert listed["total"] == 1
        assert listed["items"][0]["vote_count"] == 1

    def test_blank_name_rejected(self, client):
        r = client.post("/products", json={"name": "   ", "user_id": "alice", "safety": 1, "taste": 1})
        assert r.status_code == 422


class TestCastVote:
    def test_cast_updates_aggregate_before_returning(self, client):
        pid = _create(client)["product_id"]
        r = _vote(client, pid, anonymous_id="anon-1", safety=20, taste=10)
        assert r.status_code == 201
        body = r.json()
        assert body["is_edit"] is False
        product = body["product"]
        assert product["vote_count"] == 2
        assert product["anonymous_votes"] == 1
        # registered 80 weighs double against anonymous 20
        assert product["average_safety"] == pytest.approx(60.0, abs=0.01)
        assert product["average_taste"] == pytest.approx(50.0, abs=0.01)

    def test_second_vote_by_same_voter_is_edit(self, client):
        pid = _create(client)["product_id"]
        r = _vote(client, pid, user_id="alice", safety=30, taste=30)
        assert r.status_code == 201
        body = r.json()
        assert body["is_edit"] is True
        assert body["product"]["vote_count"] == 1
        assert body["product"]["average_safety"] == pytest.approx(30.0)

    def test_geo_point_and_store_stored(self, client):
        pid = _create(client)["product_id"]
        r = _vote(
            client, pid, anonymous_id="anon-geo", safety=50, taste=50,
            store_name="  Carrefour ", latitude=40.4, longitude=-3.7,
        )
        assert r.status_code == 201
        votes = client.get("/votes/by-anonymous/anon-geo").json()["items"]
        assert votes[0]["store_name"] == "Carrefour"
        assert votes[0]["latitude"] == pytest.approx(40.4)

    @pytest.mark.parametrize("payload", [
        {"user_id": "bob", "safety": 101, "taste": 50},
        {"user_id": "bob", "safety": 50, "taste": -1},
        {"user_id": "bob", "safety": 50, "taste": 50, "price": 6},
        {"user_id": "bob", "anonymous_id": "anon-1", "safety": 50, "taste": 50},
        {"safety": 50, "taste": 50},
        {"user_id": "bob", "safety": 50, "taste": 50, "latitude": 10.0},
    ])
    def test_invalid_vote_rejected(self, client, payload):
        pid = _create(client)["product_id"]
        r = _vote(client, pid, **payload)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

        product = client.get(f"/products/{pid}").json()
        assert product["vote_count"] == 1

    def test_unknown_product(self, client):
        r = _vote(client, 999999, user_id="bob", safety=50, taste=50)
        assert r.status_code == 404
        assert r.json()["code"] == "PRODUCT_NOT_FOUND"


class TestDeleteVote:
    def test_owner_can_delete(self, client):
        pid = _create(client)["product_id"]
        vote_id = _vote(client, pid, anonymous_id="anon-1", safety=0, taste=0).json()["vote_id"]

        r = client.delete(f"/votes/{vote_id}", params={"anonymous_id": "anon-1"})
        assert r.status_code == 204

        product = client.get(f"/products/{pid}").json()
        assert product["vote_count"] == 1
        assert product["anonymous_votes"] == 0
        assert product["average_safety"] == pytest.approx(80.0)

    def test_deleting_last_vote_resets_to_neutral(self, client):
        body = _create(client)
        r = client.delete(f"/votes/{body['vote_id']}", params={"user_id": "alice"})
        assert r.status_code == 204

        product = client.get(f"/products/{body['product_id']}").json()
        assert product["vote_count"] == 0
        assert product["average_safety"] == 50.0
        assert product["average_taste"] == 50.0
        assert product["avg_price"] is None

    def test_other_voter_forbidden(self, client):
        body = _create(client)
        r = client.delete(f"/votes/{body['vote_id']}", params={"user_id": "mallory"})
        assert r.status_code == 403
        assert r.json()["code"] == "NOT_VOTE_OWNER"

    def test_missing_vote(self, client):
        r = client.delete("/votes/987654", params={"user_id": "alice"})
        assert r.status_code == 404
        assert r.json()["code"] == "VOTE_NOT_FOUND"

    def test_identity_required(self, client):
        body = _create(client)
        r = client.delete(f"/votes/{body['vote_id']}")
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_VOTE"


class TestVoteLists:
    def test_by_product_user_and_anonymous(self, client):
        pid = _create(client)["product_id"]
        _vote(client, pid, anonymous_id="anon-1", safety=40, taste=40)
        other = _create(client, name="Otro producto")["product_id"]

        by_product = client.get(f"/votes/by-product/{pid}").json()
        assert by_product["total"] == 2

        by_user = client.get("/votes/by-user/alice").json()
        assert by_user["total"] == 2
        assert {v["product_id"] for v in by_user["items"]} == {pid, other}

        by_anon = client.get("/votes/by-anonymous/anon-1").json()
        assert by_anon["total"] == 1
        assert by_anon["items"][0]["is_anonymous"] is True


class TestMigrate:
    def test_migrate_and_repeat(self, client):
        pid = _create(client, user_id=None, anonymous_id="device-1", safety=80, taste=80)["product_id"]
        _vote(client, pid, anonymous_id="device-2", safety=20, taste=20)

        r = client.post("/votes/migrate", json={"user_id": "carol", "anonymous_id": "device-1"})
        assert r.status_code == 200
        assert r.json()["migrated_count"] == 1
        assert r.json()["products_recomputed"] == [pid]

        product = client.get(f"/products/{pid}").json()
        assert product["registered_votes"] == 1
        assert product["average_safety"] == pytest.approx(60.0, abs=0.01)

        again = client.post("/votes/migrate", json={"user_id": "carol", "anonymous_id": "device-1"})
        assert again.json()["migrated_count"] == 0

    def test_migrate_requires_both_ids(self, client):
        r = client.post("/votes/migrate", json={"user_id": "carol"})
        assert r.status_code == 422


class TestProducts:
    def test_list_safest_first(self, client):
        _create(client, name="Dudoso", safety=20)
        _create(client, name="Seguro", safety=95)
        r = client.get("/products", params={"limit": 10})
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 2
        assert [p["name"] for p in body["items"]] == ["Seguro", "Dudoso"]

    def test_get_missing_product(self, client):
        r = client.get("/products/999999")
        assert r.status_code == 404

    def test_recompute_one(self, client):
        pid = _create(client)["product_id"]
        r = client.post(f"/products/{pid}/recompute")
        assert r.status_code == 200
        assert r.json()["average_safety"] == pytest.approx(80.0)

    def test_recompute_missing(self, client):
        r = client.post("/products/999999/recompute")
        assert r.status_code == 404


class TestJobs:
    def test_recompute_all(self, client):
        _create(client, name="Uno")
        _create(client, name="Dos")
        r = client.post("/jobs/recompute-all")
        assert r.status_code == 200
        assert r.json() == {"succeeded": 2, "failed": 0, "failures": []}

    def test_price_snapshots_and_history(self, client):
        pid = _create(client, price=4)["product_id"]

        first = client.post("/jobs/price-snapshots")
        assert first.status_code == 200
        assert first.json()["snapshots_written"] == 1

        second = client.post("/jobs/price-snapshots")
        assert second.json()["snapshots_written"] == 0

        history = client.get(f"/products/{pid}/price-history").json()
        assert history["days"] == 90
        assert len(history["items"]) == 1
        assert history["items"][0]["price"] == pytest.approx(4.0)

    def test_price_snapshots_disabled(self, client):
        _create(client, price=4)
        client.put("/settings/PRICE_SNAPSHOT_ENABLED", json={"value": False})
        r = client.post("/jobs/price-snapshots")
        assert r.json()["skipped_disabled"] is True
        assert r.json()["snapshots_written"] == 0

    def test_price_history_missing_product(self, client):
        r = client.get("/products/999999/price-history")
        assert r.status_code == 404
