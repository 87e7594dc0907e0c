import pytest
from fastapi.testclient import TestClient

from packages.cluster_matching.region_lovers import RegionLoversClient
from services.matching_api.app.main import app
from services.matching_api.app.repositories.matching_repository import REPOSITORY


CATALOG = {
    "clusters": [
        {"id": "north", "name": "Nord", "drafts": [{"_id": "c1", "place_name": "Pico del Teide", "place_type": "volcan"}]},
        {"id": "south", "name": "Sud", "drafts": [{"_id": "c2", "place_name": "Loro Parque Zoo", "place_type": "zoo"}]},
        {"id": "east", "name": "Est", "drafts": []},
    ]
}

POIS = [
    {"poi_id": "p1", "nom": "Teide", "type": "volcan", "article_source": "a1", "selected": True},
    {"poi_id": "p2", "nom": "Loro Parque", "type": "zoo", "article_source": "a2"},
    {"poi_id": "p3", "nom": "Garachico", "type": "village", "article_source": "a3"},
]


@pytest.fixture(autouse=True)
def _clean_repository():
    REPOSITORY.clear()
    yield
    REPOSITORY.clear()


def _generate(client: TestClient, guide_id: str = "guide-1"):
    return client.post(f"/v1/guides/{guide_id}/matching", json={"pois": POIS, "clusters": CATALOG})


def test_generate_matching_with_inline_catalog() -> None:
    client = TestClient(app)
    resp = _generate(client)
    assert resp.status_code == 200
    body = resp.json()

    assert body["success"] is True
    assert body["stats"] == {
        "total_pois": 3,
        "assigned": 2,
        "unassigned": 1,
        "auto_matched": 2,
        "manual_matched": 0,
        "by_cluster": {"north": 1, "south": 1, "east": 0},
    }
    assert [c["cluster_id"] for c in body["clusters_metadata"]] == ["north", "south", "east"]
    assert body["place_instances_count"] == 2
    assert body["assignment"]["clusters"]["north"][0]["poi"]["poi_id"] == "p1"
    assert body["assignment"]["unassigned"][0]["current_cluster_id"] == "unassigned"
    annotated = {item["poi_id"]: item for item in body["pois"]}
    assert annotated["p1"]["cluster_name"] == "Nord"
    assert annotated["p1"]["selected"] is True
    assert annotated["p3"]["cluster_id"] is None

    stored = client.get("/v1/guides/guide-1/matching")
    assert stored.status_code == 200
    assert stored.json()["stats"]["assigned"] == 2
    assert stored.json()["created_at"]


def test_generate_matching_fetches_catalog_with_token(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def fake_fetch(self, region_id, token):
        seen["region_id"] = region_id
        seen["token"] = token
        return CATALOG

    monkeypatch.setattr(RegionLoversClient, "fetch_region", fake_fetch)
    client = TestClient(app)
    resp = client.post(
        "/v1/guides/guide-2/matching",
        json={"pois": POIS, "region_id": "tenerife"},
        headers={"Authorization": "Bearer tok-abc"},
    )
    assert resp.status_code == 200
    assert seen == {"region_id": "tenerife", "token": "tok-abc"}
    assert resp.json()["region_id"] == "tenerife"


def test_generate_matching_error_paths() -> None:
    client = TestClient(app)
    no_source = client.post("/v1/guides/guide-3/matching", json={"pois": POIS})
    assert no_source.status_code == 400

    no_token = client.post("/v1/guides/guide-3/matching", json={"pois": POIS, "region_id": "tenerife"})
    assert no_token.status_code == 401

    bad_poi = client.post("/v1/guides/guide-3/matching", json={"pois": [{"poi_id": "p1"}], "clusters": CATALOG})
    assert bad_poi.status_code == 400

    duplicated = client.post("/v1/guides/guide-3/matching", json={"pois": [POIS[0], POIS[0]], "clusters": CATALOG})
    assert duplicated.status_code == 400

    empty = client.post("/v1/guides/guide-3/matching", json={"pois": [], "clusters": CATALOG})
    assert empty.status_code == 422


def test_get_matching_returns_empty_shape_when_missing() -> None:
    resp = TestClient(app).get("/v1/guides/unknown/matching")
    assert resp.status_code == 200
    body = resp.json()
    assert body["assignment"] is None
    assert body["stats"] is None
    assert body["clusters_metadata"] == []


def test_move_poi_then_save_recomputes_stats() -> None:
    client = TestClient(app)
    _generate(client)

    moved = client.post("/v1/guides/guide-1/matching/move", json={"poi_id": "p3", "target_cluster_id": "east"})
    assert moved.status_code == 200
    body = moved.json()
    assert body["stats"]["manual_matched"] == 1
    assert body["stats"]["by_cluster"]["east"] == 1
    assert body["assignment"]["clusters"]["east"][0]["matched_automatically"] is False

    back = client.post("/v1/guides/guide-1/matching/move", json={"poi_id": "p1", "target_cluster_id": "unassigned"})
    assert back.status_code == 200
    assert back.json()["stats"]["unassigned"] == 1

    document = back.json()["assignment"]
    saved = client.post("/v1/guides/guide-1/matching/save", json={"assignment": document})
    assert saved.status_code == 200
    assert saved.json()["stats"]["total_pois"] == 3

    assert client.post("/v1/guides/guide-1/matching/move", json={"poi_id": "nope"}).status_code == 404
    assert (
        client.post("/v1/guides/guide-1/matching/move", json={"poi_id": "p1", "target_cluster_id": "west"}).status_code
        == 400
    )


def test_save_rejects_invalid_documents() -> None:
    client = TestClient(app)
    missing = client.post("/v1/guides/guide-x/matching/save", json={"assignment": {"unassigned": [], "clusters": {}}})
    assert missing.status_code == 404

    _generate(client)
    bad = client.post(
        "/v1/guides/guide-1/matching/save",
        json={"assignment": {"unassigned": [], "clusters": {"unassigned": []}}},
    )
    assert bad.status_code == 400


def test_create_manual_cluster() -> None:
    client = TestClient(app)
    fresh = client.post("/v1/guides/guide-9/clusters", json={"cluster_name": "  Anaga  "})
    assert fresh.status_code == 200
    cluster = fresh.json()["cluster"]
    assert cluster["cluster_name"] == "Anaga"
    assert cluster["is_manual"] is True

    stored = client.get("/v1/guides/guide-9/matching").json()
    assert stored["assignment"] == {"unassigned": [], "clusters": {cluster["cluster_id"]: []}}
    assert stored["stats"]["total_pois"] == 0

    _generate(client)
    added = client.post("/v1/guides/guide-1/clusters", json={"cluster_name": "Teno"})
    cluster_id = added.json()["cluster"]["cluster_id"]
    moved = client.post("/v1/guides/guide-1/matching/move", json={"poi_id": "p3", "target_cluster_id": cluster_id})
    assert moved.status_code == 200
    assert [c["cluster_id"] for c in moved.json()["clusters_metadata"]][-1] == cluster_id

    blank = client.post("/v1/guides/guide-1/clusters", json={"cluster_name": "   "})
    assert blank.status_code == 400
