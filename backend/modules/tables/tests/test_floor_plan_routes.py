# backend/modules/tables/tests/test_floor_plan_routes.py

"""
API tests for the floor plan, availability and editor routes.
"""

from datetime import timedelta
from unittest.mock import MagicMock

from modules.reservations.models.reservation_models import DiningStatus, WaitlistStatus
from modules.tables.services.layout_sync_service import layout_sync_service
from modules.reservations.tasks.polling_tasks import floor_plan_poller


class TestFloorPlanRoute:
    def test_floor_plan_view(self, client, add_table, add_booking, now):
        t1 = add_table("1", section_id="main")
        t2 = add_table("2", section_id="main")
        add_table("3", is_active=False)
        seated = add_booking(now - timedelta(minutes=10), tables=[t1], status=DiningStatus.SEATED)
        add_booking(now + timedelta(minutes=60), tables=[t2])
        unassigned = add_booking(now + timedelta(minutes=30))

        response = client.get("/api/v1/restaurants/rest-1/floor-plan")

        assert response.status_code == 200
        data = response.json()
        assert data["occupied_count"] == 1
        assert data["available_count"] == 1
        assert data["occupancy_rate"] == 50
        by_number = {t["table"]["table_number"]: t for t in data["tables"]}
        assert set(by_number) == {"1", "2"}
        assert by_number["1"]["current"]["id"] == seated.id
        assert by_number["1"]["is_occupied"] is True
        assert by_number["2"]["upcoming"] is not None
        assert by_number["2"]["can_accept_walk_in"] is False
        assert data["sections"][0]["section_id"] == "main"
        assert [b["id"] for b in data["needs_assignment"]] == [unassigned.id]
        assert "rest-1" in floor_plan_poller.restaurant_ids
        floor_plan_poller.unregister("rest-1")

    def test_floor_plan_sweeps_waitlist(self, client, add_waitlist_entry, db_session, now):
        entry = add_waitlist_entry(
            status=WaitlistStatus.NOTIFIED,
            notified_at=now - timedelta(minutes=20),
            notification_expires_at=now - timedelta(minutes=5),
        )

        response = client.get("/api/v1/restaurants/rest-1/floor-plan")

        assert response.status_code == 200
        db_session.expire_all()
        db_session.refresh(entry)
        assert entry.status == WaitlistStatus.EXPIRED
        floor_plan_poller.unregister("rest-1")


class TestAvailableTablesRoute:
    def test_available_tables(self, client, add_table):
        add_table("1", max_capacity=2)
        four = add_table("2", max_capacity=4)
        six = add_table("3", max_capacity=6)

        response = client.get(
            "/api/v1/restaurants/rest-1/tables/available", params={"party_size": 3}
        )

        assert response.status_code == 200
        data = response.json()
        assert {t["id"] for t in data["tables"]} == {four.id, six.id}
        assert data["best_fit"]["id"] == four.id
        assert data["combination"] is None

    def test_party_size_required(self, client):
        response = client.get("/api/v1/restaurants/rest-1/tables/available")
        assert response.status_code == 422


class TestCombinationRoute:
    def test_create_and_reject_duplicate(self, client, add_table):
        a = add_table("1", is_combinable=True)
        b = add_table("2", is_combinable=True)
        payload = {
            "primary_table_id": a.id,
            "secondary_table_id": b.id,
            "combined_capacity": 6,
        }

        created = client.post("/api/v1/restaurants/rest-1/table-combinations", json=payload)
        reversed_pair = client.post(
            "/api/v1/restaurants/rest-1/table-combinations",
            json={**payload, "primary_table_id": b.id, "secondary_table_id": a.id},
        )

        assert created.status_code == 201
        assert created.json()["combined_capacity"] == 6
        assert reversed_pair.status_code == 409
        assert reversed_pair.json()["error_code"] == "DUPLICATE_COMBINATION"

    def test_capacity_defaults_to_sum(self, client, add_table):
        a = add_table("1", max_capacity=4, is_combinable=True)
        b = add_table("2", max_capacity=2, is_combinable=True)

        response = client.post(
            "/api/v1/restaurants/rest-1/table-combinations",
            json={"primary_table_id": a.id, "secondary_table_id": b.id},
        )

        assert response.status_code == 201
        assert response.json()["combined_capacity"] == 6

    def test_non_combinable_table(self, client, add_table):
        a = add_table("1", is_combinable=True)
        b = add_table("2")

        response = client.post(
            "/api/v1/restaurants/rest-1/table-combinations",
            json={"primary_table_id": a.id, "secondary_table_id": b.id, "combined_capacity": 6},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "INVALID_COMBINATION"
        assert body["path"] == "/api/v1/restaurants/rest-1/table-combinations"


class TestPositionRoute:
    def test_position_update_is_queued(self, client, add_table, monkeypatch):
        table = add_table("1")
        queue = MagicMock()
        monkeypatch.setattr(layout_sync_service, "queue_position", queue)

        response = client.patch(
            f"/api/v1/restaurants/rest-1/tables/{table.id}/position",
            json={"x_position": 120, "y_position": 40},
        )

        assert response.status_code == 202
        assert response.json()["x_position"] == 120
        queue.assert_called_once()
        assert queue.call_args.args[0] == table.id

    def test_unknown_table(self, client, monkeypatch):
        monkeypatch.setattr(layout_sync_service, "queue_position", MagicMock())

        response = client.patch(
            "/api/v1/restaurants/rest-1/tables/missing/position",
            json={"x_position": 1, "y_position": 1},
        )

        assert response.status_code == 404
