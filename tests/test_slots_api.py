"""HTTP tests for /slots"""

from slotswap.models import SlotStatus

from .conftest import auth_headers, count_open_offers, read_offer, read_slot

SLOT_BODY = {
    "title": "Team standup",
    "startTime": "2030-01-07T09:00:00",
    "endTime": "2030-01-07T09:30:00",
}


def open_offer(client, proposer, proposer_slot_id, target_slot_id) -> int:
    response = client.post(
        "/swaps/offers",
        json={"proposerSlotId": proposer_slot_id, "targetSlotId": target_slot_id},
        headers=auth_headers(proposer),
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


class TestSlotCrud:
    def test_create_defaults_to_free(self, client, make_user):
        user = make_user()
        response = client.post("/slots", json=SLOT_BODY, headers=auth_headers(user))

        assert response.status_code == 201
        body = response.json()
        assert body["title"] == "Team standup"
        assert body["status"] == SlotStatus.FREE
        assert body["ownerId"] == user.id

    def test_create_tradable(self, client, make_user):
        user = make_user()
        response = client.post(
            "/slots", json={**SLOT_BODY, "status": "tradable"}, headers=auth_headers(user)
        )
        assert response.status_code == 201
        assert response.json()["status"] == SlotStatus.TRADABLE

    def test_create_locked_is_forbidden(self, client, make_user):
        user = make_user()
        response = client.post(
            "/slots", json={**SLOT_BODY, "status": "locked"}, headers=auth_headers(user)
        )
        assert response.status_code == 403
        assert response.json()["code"] == "Forbidden"

    def test_create_rejects_inverted_time_range(self, client, make_user):
        user = make_user()
        body = {**SLOT_BODY, "startTime": SLOT_BODY["endTime"], "endTime": SLOT_BODY["startTime"]}
        response = client.post("/slots", json=body, headers=auth_headers(user))
        assert response.status_code == 422

    def test_title_is_escaped_before_length_check(self, client, make_user):
        user = make_user()
        response = client.post(
            "/slots", json={**SLOT_BODY, "title": "<" * 100}, headers=auth_headers(user)
        )
        assert response.status_code == 422

    def test_escaped_title_fits(self, client, make_user):
        user = make_user()
        title = "a" * 95 + "&"
        response = client.post("/slots", json={**SLOT_BODY, "title": title}, headers=auth_headers(user))

        assert response.status_code == 201
        assert response.json()["title"] == "a" * 95 + "&amp;"
        assert len(read_slot(response.json()["id"])["title"]) == 100

    def test_plain_title_at_limit(self, client, make_user):
        user = make_user()
        response = client.post(
            "/slots", json={**SLOT_BODY, "title": "x" * 100}, headers=auth_headers(user)
        )
        assert response.status_code == 201

    def test_create_requires_auth(self, client):
        response = client.post("/slots", json=SLOT_BODY)
        assert response.status_code in (401, 403)

    def test_list_only_own_slots(self, client, make_user, make_slot):
        alice, bob = make_user(), make_user()
        first = make_slot(alice)
        second = make_slot(alice)
        make_slot(bob)

        response = client.get("/slots", headers=auth_headers(alice))

        assert response.status_code == 200
        assert [s["id"] for s in response.json()] == [first, second]

    def test_get_other_users_slot_is_forbidden(self, client, make_user, make_slot):
        alice, bob = make_user(), make_user()
        slot_id = make_slot(bob)

        response = client.get(f"/slots/{slot_id}", headers=auth_headers(alice))
        assert response.status_code == 403

    def test_get_missing_slot(self, client, make_user):
        response = client.get("/slots/999", headers=auth_headers(make_user()))
        assert response.status_code == 404
        assert response.json()["code"] == "NotFound"

    def test_update_title_and_status(self, client, make_user, make_slot):
        user = make_user()
        slot_id = make_slot(user, status=SlotStatus.FREE)

        response = client.patch(
            f"/slots/{slot_id}",
            json={"title": "Renamed", "status": "tradable"},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json()["title"] == "Renamed"
        assert read_slot(slot_id)["status"] == SlotStatus.TRADABLE

    def test_update_time_checked_against_stored_slot(self, client, make_user, make_slot):
        user = make_user()
        slot_id = make_slot(user)

        response = client.patch(
            f"/slots/{slot_id}",
            json={"endTime": "2000-01-01T00:00:00"},
            headers=auth_headers(user),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "InvalidTimeRange"

    def test_update_title_too_long_once_escaped(self, client, make_user, make_slot):
        user = make_user()
        slot_id = make_slot(user, title="Original")

        response = client.patch(
            f"/slots/{slot_id}", json={"title": "\"" * 30}, headers=auth_headers(user)
        )

        assert response.status_code == 422
        assert read_slot(slot_id)["title"] == "Original"

    def test_update_to_locked_is_forbidden(self, client, make_user, make_slot):
        user = make_user()
        slot_id = make_slot(user)

        response = client.patch(
            f"/slots/{slot_id}", json={"status": "locked"}, headers=auth_headers(user)
        )
        assert response.status_code == 403
        assert read_slot(slot_id)["status"] == SlotStatus.TRADABLE

    def test_delete_unlocked_slot(self, client, make_user, make_slot):
        user = make_user()
        slot_id = make_slot(user)

        response = client.delete(f"/slots/{slot_id}", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["declinedOfferId"] is None
        assert read_slot(slot_id) is None


class TestLockedSlots:
    def test_locked_slot_cannot_change_status(self, client, make_user, make_slot):
        alice, bob = make_user(), make_user()
        a, b = make_slot(alice), make_slot(bob)
        open_offer(client, alice, a, b)

        response = client.patch(f"/slots/{b}", json={"status": "free"}, headers=auth_headers(bob))

        assert response.status_code == 409
        assert response.json()["code"] == "Locked"
        assert read_slot(b)["status"] == SlotStatus.LOCKED

    def test_locked_slot_cannot_be_renamed(self, client, make_user, make_slot):
        alice, bob = make_user(), make_user()
        a, b = make_slot(alice), make_slot(bob)
        open_offer(client, alice, a, b)

        response = client.patch(f"/slots/{a}", json={"title": "Sneaky"}, headers=auth_headers(alice))

        assert response.status_code == 409
        assert read_slot(a)["title"] != "Sneaky"

    def test_locked_slot_cannot_be_deleted_without_force(self, client, make_user, make_slot):
        alice, bob = make_user(), make_user()
        a, b = make_slot(alice), make_slot(bob)
        offer_id = open_offer(client, alice, a, b)

        response = client.delete(f"/slots/{a}", headers=auth_headers(alice))

        assert response.status_code == 409
        assert read_slot(a)["status"] == SlotStatus.LOCKED
        assert read_offer(offer_id)["status"] == "open"

    def test_force_delete_declines_offer_and_releases_counterpart(self, client, make_user, make_slot):
        alice, bob = make_user(), make_user()
        a, b = make_slot(alice), make_slot(bob)
        offer_id = open_offer(client, alice, a, b)

        response = client.delete(f"/slots/{b}?force=true", headers=auth_headers(bob))

        assert response.status_code == 200
        assert response.json()["declinedOfferId"] == offer_id
        assert read_slot(b) is None
        counterpart = read_slot(a)
        assert counterpart["owner_id"] == alice.id
        assert counterpart["status"] == SlotStatus.TRADABLE
        offer = read_offer(offer_id)
        assert offer["status"] == "declined"
        assert offer["resolved_at"] is not None
        assert count_open_offers() == 0

    def test_force_delete_of_unlocked_slot_is_plain_delete(self, client, make_user, make_slot):
        user = make_user()
        slot_id = make_slot(user)

        response = client.delete(f"/slots/{slot_id}?force=true", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json()["declinedOfferId"] is None
        assert read_slot(slot_id) is None
