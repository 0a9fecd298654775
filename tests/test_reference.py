"""Tests for the council and suburb listings, plus the health check."""
from __future__ import annotations

from trainer_directory import db
from trainer_directory.models import Region

from helpers import make_council, make_suburb


def seed_reference():
    yarra = make_council("City of Yarra", Region.INNER_CITY)
    darebin = make_council("City of Darebin", Region.NORTHERN)
    make_suburb(yarra, "Richmond", postcode="3121")
    make_suburb(yarra, "Fitzroy", postcode="3065")
    make_suburb(darebin, "Northcote", postcode="3070")
    db.session.commit()
    return yarra, darebin


def test_health_endpoint(client) -> None:
    """Ensure the health check returns the expected response."""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_list_councils(client, app):
    seed_reference()
    body = client.get("/api/councils").get_json()
    assert [c["name"] for c in body["items"]] == ["City of Darebin", "City of Yarra"]
    assert body["total"] == 2
    northern = client.get("/api/councils?region=Northern").get_json()
    assert [c["name"] for c in northern["items"]] == ["City of Darebin"]
    assert northern["items"][0]["region"] == "Northern"
    assert client.get("/api/councils?region=Atlantis").status_code == 400


def test_list_suburbs(client, app):
    yarra, _ = seed_reference()
    body = client.get(f"/api/suburbs?council_id={yarra.id}").get_json()
    assert [s["name"] for s in body["items"]] == ["Fitzroy", "Richmond"]
    assert client.get("/api/suburbs?postcode=3070").get_json()["items"][0]["name"] == "Northcote"
    assert client.get("/api/suburbs?postcode=abc").status_code == 400


def test_suburb_pagination(client, app):
    seed_reference()
    first = client.get("/api/suburbs?limit=2").get_json()
    assert [s["name"] for s in first["items"]] == ["Fitzroy", "Northcote"]
    assert first["has_more"] is True
    second = client.get("/api/suburbs?limit=2&page=2").get_json()
    assert [s["name"] for s in second["items"]] == ["Richmond"]
    assert second["has_more"] is False
