"""
Client Journey Tests
====================

Starting a journey for a client, listing journeys by client and by matter,
reading per-step progress, advancing step by step and moving between steps.
"""

import pytest

from conftest import login_as
from ytp_portal.models import Matter
from ytp_portal.models_journey import ClientJourney, Journey, JourneyStep, JourneyStepProgress


@pytest.fixture
def started(client, lawyer, client_user, journey, matter):
    """A client journey started through the API, as the lawyer"""
    login_as(client, lawyer)
    response = client.post(
        "/api/client-journeys",
        json={"clientId": client_user.id, "journeyId": journey.id, "matterId": matter.id, "priority": "HIGH"},
    )
    assert response.status_code == 200
    return response.json()["client_journey"]


class TestStartClientJourney:

    def test_start_opens_first_step(self, started, journey, db_session):
        assert started["status"] == "IN_PROGRESS"
        assert started["priority"] == "HIGH"
        assert started["current_step_id"] == journey.steps[0].id
        assert started["started_at"] is not None

        progress = db_session.query(JourneyStepProgress).all()
        assert len(progress) == 1
        assert progress[0].step_id == journey.steps[0].id
        assert progress[0].status == "IN_PROGRESS"

    def test_second_journey_on_same_matter(self, client, started, client_user, journey, matter):
        response = client.post(
            "/api/client-journeys",
            json={"clientId": client_user.id, "journeyId": journey.id, "matterId": matter.id},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "A journey already exists for this matter"

    def test_matter_must_belong_to_client(self, client, lawyer, other_client, journey, matter):
        login_as(client, lawyer)
        response = client.post(
            "/api/client-journeys",
            json={"clientId": other_client.id, "journeyId": journey.id, "matterId": matter.id},
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("field", ["clientId", "journeyId", "matterId"])
    def test_unknown_references(self, client, lawyer, client_user, journey, matter, field):
        login_as(client, lawyer)
        payload = {"clientId": client_user.id, "journeyId": journey.id, "matterId": matter.id, field: "missing"}
        assert client.post("/api/client-journeys", json=payload).status_code == 404

    def test_inactive_journey(self, client, lawyer, client_user, journey, db_session):
        journey.is_active = False
        db_session.commit()
        login_as(client, lawyer)

        response = client.post("/api/client-journeys", json={"clientId": client_user.id, "journeyId": journey.id})

        assert response.status_code == 404

    def test_client_cannot_start(self, client, client_user, journey):
        login_as(client, client_user)
        response = client.post("/api/client-journeys", json={"clientId": client_user.id, "journeyId": journey.id})
        assert response.status_code == 403


class TestListClientJourneys:

    def test_sorted_by_priority(self, client, started, lawyer, client_user, journey, db_session):
        second_matter = Matter(client_id=client_user.id, title="Business Formation")
        db_session.add(second_matter)
        db_session.commit()
        urgent = client.post(
            "/api/client-journeys",
            json={
                "clientId": client_user.id,
                "journeyId": journey.id,
                "matterId": second_matter.id,
                "priority": "URGENT",
            },
        ).json()["client_journey"]
        low = client.post(
            "/api/client-journeys",
            json={"clientId": client_user.id, "journeyId": journey.id, "priority": "LOW"},
        ).json()["client_journey"]

        login_as(client, client_user)
        journeys = client.get(f"/api/client-journeys/client/{client_user.id}").json()["journeys"]

        assert [j["id"] for j in journeys] == [urgent["id"], started["id"], low["id"]]
        assert journeys[1]["current_step_name"] == "Intake"
        assert journeys[1]["total_steps"] == 3
        assert journeys[1]["matter_title"] == "Estate Plan"

    def test_cancelled_are_hidden(self, client, started, client_user, db_session):
        db_session.get(ClientJourney, started["id"]).status = "CANCELLED"
        db_session.commit()
        login_as(client, client_user)

        assert client.get(f"/api/client-journeys/client/{client_user.id}").json()["journeys"] == []

    def test_other_client_is_denied(self, client, started, client_user, other_client):
        login_as(client, other_client)
        assert client.get(f"/api/client-journeys/client/{client_user.id}").status_code == 403


class TestAdvance:

    def test_advance_through_to_completion(self, client, started, journey, db_session):
        url = f"/api/client-journeys/{started['id']}/advance"

        first = client.post(url).json()
        assert first["success"] is True
        assert first["next_step"]["name"] == "Design Meeting"

        second = client.post(url).json()
        assert second["next_step"]["name"] == "Signing"

        last = client.post(url).json()
        assert last == {"success": True, "completed": True}

        db_session.expire_all()
        client_journey = db_session.get(ClientJourney, started["id"])
        assert client_journey.status == "COMPLETED"
        assert client_journey.completed_at is not None
        statuses = {p.status for p in db_session.query(JourneyStepProgress).all()}
        assert statuses == {"COMPLETE"}

    def test_without_current_step(self, client, lawyer, client_user, db_session):
        empty = Journey(name="Empty")
        db_session.add(empty)
        db_session.commit()
        login_as(client, lawyer)
        started = client.post(
            "/api/client-journeys", json={"clientId": client_user.id, "journeyId": empty.id}
        ).json()["client_journey"]

        response = client.post(f"/api/client-journeys/{started['id']}/advance")

        assert response.status_code == 400
        assert response.json()["detail"] == "Current step not found"

    def test_unknown_client_journey(self, client, lawyer):
        login_as(client, lawyer)
        assert client.post("/api/client-journeys/missing/advance").status_code == 404

    def test_finished_journey_cannot_advance(self, client, started, db_session):
        client_journey = db_session.get(ClientJourney, started["id"])
        client_journey.status = "COMPLETED"
        db_session.commit()

        response = client.post(f"/api/client-journeys/{started['id']}/advance")

        assert response.status_code == 400
        assert response.json()["detail"] == "Client journey is completed"
        db_session.expire_all()
        assert db_session.get(ClientJourney, started["id"]).completed_at is None


class TestProgress:

    def test_steps_with_progress(self, client, started, client_user, journey):
        login_as(client, client_user)

        response = client.get(f"/api/client-journeys/{started['id']}/progress")

        assert response.status_code == 200
        body = response.json()
        assert body["client_journey"]["id"] == started["id"]
        assert body["client_journey"]["journey_name"] == journey.name
        steps = body["steps"]
        assert [s["name"] for s in steps] == ["Intake", "Design Meeting", "Signing"]
        assert steps[0]["progress_status"] == "IN_PROGRESS"
        assert steps[0]["progress_id"] is not None
        assert steps[1]["progress_id"] is None
        assert steps[1]["progress_status"] is None
        assert steps[1]["iteration_count"] == 0

    def test_progress_id_opens_the_bridge_thread(self, client, started, client_user):
        client.post(f"/api/client-journeys/{started['id']}/advance")
        login_as(client, client_user)
        steps = client.get(f"/api/client-journeys/{started['id']}/progress").json()["steps"]
        bridge = steps[1]
        assert bridge["step_type"] == "BRIDGE"

        posted = client.post(f"/api/bridge-conversations/{bridge['progress_id']}", json={"message": "Question"})

        assert posted.status_code == 200
        messages = client.get(f"/api/bridge-conversations/{bridge['progress_id']}").json()["messages"]
        assert [m["message"] for m in messages] == ["Question"]

    def test_other_client_is_denied(self, client, started, other_client):
        login_as(client, other_client)
        assert client.get(f"/api/client-journeys/{started['id']}/progress").status_code == 403

    def test_unknown_client_journey(self, client, lawyer):
        login_as(client, lawyer)
        assert client.get("/api/client-journeys/missing/progress").status_code == 404


class TestMoveToStep:

    def test_jump_forward(self, client, started, journey, db_session):
        first, _, last = journey.steps

        response = client.post(f"/api/client-journeys/{started['id']}/move-to-step", json={"stepId": last.id})

        assert response.json() == {"success": True}
        db_session.expire_all()
        assert db_session.get(ClientJourney, started["id"]).current_step_id == last.id
        statuses = {p.step_id: p.status for p in db_session.query(JourneyStepProgress).all()}
        assert statuses == {first.id: "COMPLETE", last.id: "IN_PROGRESS"}

    def test_moving_back_reopens_existing_progress(self, client, started, journey, db_session):
        first = journey.steps[0]
        client.post(f"/api/client-journeys/{started['id']}/advance")

        client.post(f"/api/client-journeys/{started['id']}/move-to-step", json={"stepId": first.id})

        db_session.expire_all()
        rows = db_session.query(JourneyStepProgress).filter(JourneyStepProgress.step_id == first.id).all()
        assert len(rows) == 1
        assert rows[0].status == "IN_PROGRESS"
        assert rows[0].completed_at is None

    def test_completed_journey_is_reopened(self, client, started, journey, db_session):
        url = f"/api/client-journeys/{started['id']}/advance"
        for _ in journey.steps:
            client.post(url)

        client.post(f"/api/client-journeys/{started['id']}/move-to-step", json={"stepId": journey.steps[2].id})

        db_session.expire_all()
        client_journey = db_session.get(ClientJourney, started["id"])
        assert client_journey.status == "IN_PROGRESS"
        assert client_journey.completed_at is None

    def test_step_from_another_journey(self, client, started, db_session):
        other = Journey(name="Trust Funding", steps=[JourneyStep(name="Deeds", step_order=1)])
        db_session.add(other)
        db_session.commit()

        response = client.post(
            f"/api/client-journeys/{started['id']}/move-to-step", json={"stepId": other.steps[0].id}
        )

        assert response.status_code == 404

    def test_requires_step_id(self, client, started):
        response = client.post(f"/api/client-journeys/{started['id']}/move-to-step", json={})
        assert response.status_code == 400

    def test_client_cannot_move(self, client, started, client_user, journey):
        login_as(client, client_user)
        response = client.post(
            f"/api/client-journeys/{started['id']}/move-to-step", json={"stepId": journey.steps[1].id}
        )
        assert response.status_code == 403


class TestMatterJourneys:

    def test_lists_journeys_on_the_matter(self, client, started, client_user, matter):
        response = client.get(f"/api/client-journeys/matter/{matter.id}")

        assert response.status_code == 200
        journeys = response.json()["journeys"]
        assert [j["id"] for j in journeys] == [started["id"]]
        assert journeys[0]["current_step_name"] == "Intake"
        assert journeys[0]["email"] == client_user.email

    def test_unknown_matter(self, client, lawyer):
        login_as(client, lawyer)
        assert client.get("/api/client-journeys/matter/missing").status_code == 404

    def test_client_is_denied(self, client, started, client_user, matter):
        login_as(client, client_user)
        assert client.get(f"/api/client-journeys/matter/{matter.id}").status_code == 403
