"""Tests for the admin back office."""
from __future__ import annotations

from datetime import timedelta

from trainer_directory import db
from trainer_directory.models import PlacementStatus

from helpers import make_placement


def test_admin_routes_require_admin_role(client, auth_header, richmond):
    assert client.get("/api/admin/businesses").status_code == 401
    assert client.get("/api/admin/businesses", headers=auth_header(role="trainer")).status_code == 403


def test_list_businesses_filters(client, auth_header, richmond):
    admin = auth_header("admin-1", role="admin")
    all_rows = client.get("/api/admin/businesses", headers=admin).get_json()
    assert [row["name"] for row in all_rows] == ["B4", "B3", "B2", "B1"]

    pro = client.get("/api/admin/businesses?tier=pro", headers=admin).get_json()
    assert [row["name"] for row in pro] == ["B3", "B2"]

    assert client.get("/api/admin/businesses?tier=gold", headers=admin).status_code == 400


def test_upgrading_tier_changes_search_order(client, auth_header, richmond):
    admin = auth_header("admin-1", role="admin")
    response = client.patch(
        f"/api/admin/businesses/{richmond['b4'].id}", json={"tier": "pro", "verified": True}, headers=admin
    )
    assert response.status_code == 200
    assert response.get_json()["tier"] == "pro"
    assert response.get_json()["verified"] is True
    search = client.get("/api/public/search?suburb=richmond&age_stage=puppy").get_json()
    assert [item["name"] for item in search["data"]["results"]] == ["B1", "B4", "B3", "B2"]


def test_admin_delete_hides_listing(client, auth_header, richmond):
    admin = auth_header("admin-1", role="admin")
    assert client.delete(f"/api/admin/businesses/{richmond['b1'].id}", headers=admin).status_code == 200
    assert richmond["placement"].status == PlacementStatus.CANCELLED
    listed = client.get("/api/admin/businesses?include_deleted=true", headers=admin).get_json()
    assert len(listed) == 4
    search = client.get("/api/public/search?suburb=richmond&age_stage=puppy").get_json()
    assert [item["name"] for item in search["data"]["results"]] == ["B3", "B2", "B4"]


def test_queue_promote_and_cancel(client, auth_header, richmond):
    admin = auth_header("admin-1", role="admin")
    council_id = richmond["council"].id
    first = make_placement(richmond["b2"], status=PlacementStatus.QUEUED, queue_position=1)
    second = make_placement(richmond["b3"], status=PlacementStatus.QUEUED, queue_position=2)
    db.session.commit()

    queue = client.get(f"/api/admin/featured/queue?council_id={council_id}", headers=admin).get_json()
    assert [p["id"] for p in queue] == [first.id, second.id]

    stats = client.get("/api/admin/featured/stats", headers=admin).get_json()
    assert stats["total_queued"] == 2 and stats["total_active"] == 1

    promoted = client.post("/api/admin/featured/promote", json={"council_id": council_id}, headers=admin)
    assert promoted.status_code == 200
    assert promoted.get_json()["id"] == first.id
    assert promoted.get_json()["status"] == "active"

    cancelled = client.post(f"/api/admin/featured/{second.id}/cancel", json={}, headers=admin)
    assert cancelled.status_code == 200
    assert cancelled.get_json()["cancel_reason"] == "Cancelled by admin"

    empty = client.post("/api/admin/featured/promote", json={"council_id": council_id}, headers=admin)
    assert empty.status_code == 404

    # B1 was activated earlier than B2, so it stays first
    search = client.get("/api/public/search?suburb=richmond&age_stage=puppy").get_json()
    assert [item["name"] for item in search["data"]["results"]] == ["B1", "B2", "B3", "B4"]


def test_expire_sweep(client, auth_header, richmond):
    admin = auth_header("admin-1", role="admin")
    placement = richmond["placement"]
    placement.ends_at = placement.starts_at + timedelta(minutes=1)
    db.session.commit()
    response = client.post("/api/admin/featured/expire", headers=admin)
    assert response.status_code == 200
    assert response.get_json() == {"expired_count": 1, "promoted_count": 0, "errors": []}
    assert placement.status == PlacementStatus.EXPIRED


def test_admin_delete_listing_without_placements(client, auth_header, richmond):
    admin = auth_header("admin-1", role="admin")
    assert client.delete(f"/api/admin/businesses/{richmond['b2'].id}", headers=admin).status_code == 200
    assert richmond["b2"].deleted_at is not None
    assert richmond["placement"].status == PlacementStatus.ACTIVE
