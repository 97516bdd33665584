"""
Journey Tests
=============

Journey templates and their ordered steps: listing with counts, soft delete,
step creation and batch reordering.
"""

import logging

from conftest import login_as
from ytp_portal.models_journey import BridgeConversation, ClientJourney, Journey, JourneyStep, JourneyStepProgress


class TestJourneys:

    def test_list_counts_steps_and_active_clients(self, client, lawyer, journey, client_user, db_session):
        db_session.add(ClientJourney(client_id=client_user.id, journey_id=journey.id, status="IN_PROGRESS"))
        db_session.add(ClientJourney(client_id=client_user.id, journey_id=journey.id, status="COMPLETED"))
        db_session.commit()
        login_as(client, lawyer)

        response = client.get("/api/journeys")

        assert response.status_code == 200
        [listed] = response.json()["journeys"]
        assert listed["id"] == journey.id
        assert listed["step_count"] == 3
        assert listed["active_clients"] == 1

    def test_create(self, client, lawyer):
        login_as(client, lawyer)

        response = client.post(
            "/api/journeys",
            json={"name": "Trust Administration", "journeyType": "SERVICE", "estimatedDurationDays": 90},
        )

        assert response.status_code == 200
        created = response.json()["journey"]
        assert created["is_active"] is True
        assert created["estimated_duration_days"] == 90

    def test_invalid_journey_type(self, client, lawyer):
        login_as(client, lawyer)
        assert client.post("/api/journeys", json={"name": "X", "journeyType": "ODYSSEY"}).status_code == 400

    def test_get_with_ordered_steps(self, client, client_user, journey):
        login_as(client, client_user)

        body = client.get(f"/api/journeys/{journey.id}").json()

        assert body["journey"]["name"] == journey.name
        assert [s["name"] for s in body["steps"]] == ["Intake", "Design Meeting", "Signing"]

    def test_get_unknown(self, client, client_user):
        login_as(client, client_user)
        assert client.get("/api/journeys/missing").status_code == 404

    def test_update(self, client, lawyer, journey, db_session, caplog):
        caplog.set_level(logging.INFO, logger="ytp_portal.routes.journeys")
        login_as(client, lawyer)

        response = client.put(f"/api/journeys/{journey.id}", json={"description": "Updated"})

        assert response.status_code == 200
        db_session.expire_all()
        assert journey.description == "Updated"
        assert journey.name == "Estate Planning Engagement"
        assert f"Journey {journey.id} updated by {lawyer.id}" in caplog.text

    def test_delete_is_soft(self, client, lawyer, journey, db_session):
        login_as(client, lawyer)

        assert client.delete(f"/api/journeys/{journey.id}").status_code == 200

        db_session.expire_all()
        assert db_session.get(Journey, journey.id).is_active is False
        assert client.get("/api/journeys").json()["journeys"] == []

    def test_client_cannot_manage(self, client, client_user):
        login_as(client, client_user)
        assert client.get("/api/journeys").status_code == 403
        assert client.post("/api/journeys", json={"name": "X"}).status_code == 403


class TestJourneySteps:

    def test_create_appends_when_order_missing(self, client, lawyer, journey):
        login_as(client, lawyer)

        response = client.post(
            "/api/journey-steps",
            json={
                "journeyId": journey.id,
                "name": "Funding",
                "stepType": "MILESTONE",
                "responsibleParty": "BOTH",
                "automationConfig": {"sendReminder": True},
            },
        )

        assert response.status_code == 200
        step = response.json()["step"]
        assert step["step_order"] == 4
        assert step["automation_config"] == {"sendReminder": True}

    def test_create_for_unknown_journey(self, client, lawyer):
        login_as(client, lawyer)
        response = client.post("/api/journey-steps", json={"journeyId": "missing", "name": "X"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Journey not found"

    def test_update_and_delete(self, client, lawyer, journey, db_session, caplog):
        caplog.set_level(logging.INFO, logger="ytp_portal.routes.journey_steps")
        step = journey.steps[0]
        login_as(client, lawyer)

        assert client.put(f"/api/journey-steps/{step.id}", json={"name": "Welcome"}).status_code == 200
        db_session.expire_all()
        assert db_session.get(JourneyStep, step.id).name == "Welcome"
        assert f"Journey step {step.id} updated by {lawyer.id}" in caplog.text

        assert client.delete(f"/api/journey-steps/{step.id}").json() == {"success": True}
        db_session.expire_all()
        assert db_session.get(JourneyStep, step.id) is None

    def test_step_in_use_is_kept(self, client, lawyer, client_user, journey, db_session):
        step = journey.steps[0]
        client_journey = ClientJourney(
            client_id=client_user.id, journey_id=journey.id, current_step_id=step.id, status="IN_PROGRESS"
        )
        db_session.add(client_journey)
        db_session.flush()
        progress = JourneyStepProgress(client_journey_id=client_journey.id, step_id=step.id, status="IN_PROGRESS")
        db_session.add(progress)
        db_session.flush()
        db_session.add(BridgeConversation(step_progress_id=progress.id, user_id=client_user.id, message="Question"))
        db_session.commit()
        login_as(client, lawyer)

        response = client.delete(f"/api/journey-steps/{step.id}")

        assert response.status_code == 409
        assert response.json()["detail"] == "Step is in use by client journeys"
        db_session.expire_all()
        assert db_session.get(JourneyStep, step.id) is not None
        assert db_session.query(JourneyStepProgress).count() == 1
        assert db_session.query(BridgeConversation).count() == 1
        assert client.post(f"/api/client-journeys/{client_journey.id}/advance").status_code == 200

    def test_step_with_past_progress_is_kept(self, client, lawyer, client_user, journey, db_session):
        done, current, _ = journey.steps
        client_journey = ClientJourney(
            client_id=client_user.id, journey_id=journey.id, current_step_id=current.id, status="IN_PROGRESS"
        )
        db_session.add(client_journey)
        db_session.flush()
        db_session.add(JourneyStepProgress(client_journey_id=client_journey.id, step_id=done.id, status="COMPLETE"))
        db_session.commit()
        login_as(client, lawyer)

        assert client.delete(f"/api/journey-steps/{done.id}").status_code == 409

    def test_unknown_step(self, client, lawyer):
        login_as(client, lawyer)
        assert client.put("/api/journey-steps/missing", json={"name": "X"}).status_code == 404
        assert client.delete("/api/journey-steps/missing").status_code == 404

    def test_reorder(self, client, lawyer, journey, db_session):
        first, second, third = journey.steps
        login_as(client, lawyer)

        response = client.post(
            "/api/journey-steps/reorder",
            json={
                "steps": [
                    {"id": third.id, "stepOrder": 1},
                    {"id": first.id, "stepOrder": 2},
                    {"id": second.id, "stepOrder": 3},
                ]
            },
        )

        assert response.status_code == 200
        names = [s["name"] for s in client.get(f"/api/journeys/{journey.id}").json()["steps"]]
        assert names == ["Signing", "Intake", "Design Meeting"]

    def test_reorder_with_unknown_id_changes_nothing(self, client, lawyer, journey, db_session):
        first, second, _ = journey.steps
        login_as(client, lawyer)

        response = client.post(
            "/api/journey-steps/reorder",
            json={"steps": [{"id": first.id, "stepOrder": 9}, {"id": "missing", "stepOrder": 1}]},
        )

        assert response.status_code == 404
        db_session.expire_all()
        assert db_session.get(JourneyStep, first.id).step_order == 1

    def test_reorder_requires_steps(self, client, lawyer):
        login_as(client, lawyer)
        response = client.post("/api/journey-steps/reorder", json={"steps": []})
        assert response.status_code == 400
        assert response.json()["detail"] == "Steps array is required"
