import pytest

from packages.cluster_matching.assign import auto_assign_pois
from packages.cluster_matching.codec import (
    assignment_from_document,
    assignment_to_document,
    poi_from_document,
    stats_to_document,
)
from packages.cluster_matching.edit import move_poi
from packages.cluster_matching.errors import InvalidInputError
from packages.cluster_matching.stats import compute_stats
from packages.cluster_matching.types import Coordinates, PlaceRecord, PointOfInterest


def _assignment():
    pois = [
        PointOfInterest(
            poi_id="p1",
            name="Teide",
            category="volcan",
            source_article="https://example.org/teide",
            coordinates=Coordinates(lat=28.27, lon=-16.64, display_name="Teide"),
        ),
        PointOfInterest(poi_id="p2", name="abcdefghij", category="autre"),
    ]
    candidates = [
        PlaceRecord(place_id="c1", name="Pico del Teide", category="volcan", cluster_id="north", cluster_name="Nord"),
        PlaceRecord(place_id="c2", name="abcdevwxyz", category="autre", cluster_id="south", cluster_name="Sud"),
    ]
    return auto_assign_pois(pois, candidates)


def test_assignment_document_shape() -> None:
    doc = assignment_to_document(_assignment())

    assert set(doc) == {"unassigned", "clusters"}
    assert doc["clusters"]["south"] == []
    assigned = doc["clusters"]["north"][0]
    assert assigned["poi"] == {
        "poi_id": "p1",
        "nom": "Teide",
        "type": "volcan",
        "article_source": "https://example.org/teide",
        "coordinates": {"lat": 28.27, "lon": -16.64, "display_name": "Teide"},
    }
    assert assigned["current_cluster_id"] == "north"
    assert assigned["place_instance_id"] == "c1"
    assert assigned["matched_automatically"] is True
    assert assigned["suggested_match"]["place_instance"]["place_name"] == "Pico del Teide"
    assert assigned["suggested_match"]["confidence"] == "medium"

    pending = doc["unassigned"][0]
    assert pending["current_cluster_id"] == "unassigned"
    assert "place_instance_id" not in pending
    assert pending["matched_automatically"] is False
    assert pending["suggested_match"]["place_instance"]["place_instance_id"] == "c2"


def test_assignment_document_decodes_back_after_manual_edit() -> None:
    edited = move_poi(_assignment(), "p2", "south")
    decoded = assignment_from_document(assignment_to_document(edited))
    assert decoded == edited
    assert stats_to_document(compute_stats(decoded)) == {
        "total_pois": 2,
        "assigned": 2,
        "unassigned": 0,
        "auto_matched": 1,
        "manual_matched": 1,
        "by_cluster": {"north": 1, "south": 1},
    }


def test_decoding_rejects_sentinel_used_as_cluster() -> None:
    with pytest.raises(InvalidInputError):
        assignment_from_document({"unassigned": [], "clusters": {"unassigned": []}})


def test_decoding_rejects_inconsistent_current_cluster() -> None:
    item = {"poi": {"poi_id": "p1", "nom": "Teide"}, "current_cluster_id": "north", "matched_automatically": False}
    with pytest.raises(InvalidInputError):
        assignment_from_document({"unassigned": [item], "clusters": {"north": []}})
    with pytest.raises(InvalidInputError):
        assignment_from_document({"unassigned": [], "clusters": {"south": [item]}})


def test_decoding_rejects_duplicate_pois() -> None:
    pending = {"poi": {"poi_id": "p1", "nom": "Teide"}, "current_cluster_id": "unassigned"}
    placed = {"poi": {"poi_id": "p1", "nom": "Teide"}, "current_cluster_id": "north"}
    with pytest.raises(InvalidInputError):
        assignment_from_document({"unassigned": [pending], "clusters": {"north": [placed]}})


def test_poi_from_document_requires_name() -> None:
    with pytest.raises(InvalidInputError):
        poi_from_document({"poi_id": "p1"})
    poi = poi_from_document({"poi_id": "p1", "nom": "Masca"})
    assert poi.category == ""
    assert poi.coordinates is None


def test_decoding_rejects_place_that_is_not_the_suggested_match() -> None:
    suggestion = {
        "place_instance": {"place_instance_id": "c1", "place_name": "Pico del Teide", "cluster_id": "north"},
        "score": 0.9,
        "confidence": "high",
    }
    item = {
        "poi": {"poi_id": "p1", "nom": "Teide"},
        "current_cluster_id": "north",
        "place_instance_id": "c9",
        "suggested_match": suggestion,
    }
    with pytest.raises(InvalidInputError, match="c9"):
        assignment_from_document({"unassigned": [], "clusters": {"north": [item]}})

    bare = {"poi": {"poi_id": "p1", "nom": "Teide"}, "current_cluster_id": "north", "place_instance_id": "c1"}
    with pytest.raises(InvalidInputError):
        assignment_from_document({"unassigned": [], "clusters": {"north": [bare]}})
