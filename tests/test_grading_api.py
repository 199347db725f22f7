"""Tests for grading workflow API endpoints."""

from __future__ import annotations

import typing as t

import pytest
from fastapi.testclient import TestClient

from gradeflow.model import AnswerBlock, Examiner, Subject, User, UserRole


class Marker(t.NamedTuple):
    examiner: Examiner
    headers: dict[str, str]


@pytest.fixture
def markers(
    subject: Subject,
    user_factory: t.Callable[..., User],
    examiner_factory: t.Callable[..., Examiner],
    auth_headers: t.Callable[[User], dict[str, str]],
) -> list[Marker]:
    """Three examiners qualified for the default subject, each with a login."""
    markers = []
    for _ in range(3):
        user = user_factory(role=UserRole.Examiner)
        examiner = examiner_factory(subjects=[subject], user=user)
        markers.append(Marker(examiner=examiner, headers=auth_headers(user)))
    return markers


@pytest.fixture
def block(block_factory: t.Callable[..., AnswerBlock]) -> AnswerBlock:
    return block_factory()


def assign(
    client: TestClient, headers: dict[str, str], block: AnswerBlock, marker: Marker, round_number: int, **extra: t.Any
) -> dict[str, t.Any]:
    response = client.post(
        "/api/grading/assignments",
        json={
            "block_code": block.block_code,
            "examiner_id": str(marker.examiner.examiner_id),
            "round_number": round_number,
            **extra,
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def submit(client: TestClient, marker: Marker, assignment: dict[str, t.Any], score: float) -> dict[str, t.Any]:
    response = client.post(
        "/api/grading/results",
        json={"assignment_id": assignment["assignment_id"], "score": score},
        headers=marker.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestAccess(object):
    """Role checks on the grading endpoints."""

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.get("/api/grading/assignments")

        assert response.status_code == 401

    def test_examiner_cannot_use_admin_endpoints(self, client: TestClient, markers: list[Marker]) -> None:
        response = client.get("/api/grading/stats", headers=markers[0].headers)

        assert response.status_code == 403

    def test_admin_cannot_submit_results(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assignment = assign(client, admin_headers, block, markers[0], 1)

        response = client.post(
            "/api/grading/results",
            json={"assignment_id": assignment["assignment_id"], "score": 5},
            headers=admin_headers,
        )

        assert response.status_code == 403

    def test_examiner_role_without_examiner_record(
        self,
        client: TestClient,
        user_factory: t.Callable[..., User],
        auth_headers: t.Callable[[User], dict[str, str]],
    ) -> None:
        orphan = user_factory(role=UserRole.Examiner)

        response = client.get("/api/grading/my-assignments", headers=auth_headers(orphan))

        assert response.status_code == 404
        assert response.json()["kind"] == "ExaminerNotFound"


class TestGradingFlow(object):
    """A block graded end to end over HTTP."""

    def test_matched_block_is_approved(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        first = assign(client, admin_headers, block, markers[0], 1)
        second = assign(client, admin_headers, block, markers[1], 2)

        pending = submit(client, markers[0], first, 8.0)
        assert pending["comparison"]["status"] == "PENDING"

        matched = submit(client, markers[1], second, 8.5)
        assert matched["result"]["score"] == 8.5
        assert matched["comparison"]["status"] == "MATCHED"
        assert matched["comparison"]["final_score"] == 8.25
        assert matched["comparison"]["score_difference"] == 0.5

        response = client.post(f"/api/grading/approve/{block.block_code}", json={}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["block"]["final_score"] == 8.25
        assert data["comparison"]["approved"] is True

        detail = client.get(f"/api/grading/blocks/{block.block_code}", headers=admin_headers).json()
        assert [a["status"] for a in detail["assignments"]] == ["COMPLETED", "COMPLETED"]
        assert detail["block"]["approved_by"] is not None

        final = client.get("/api/grading/results", params={"is_final": True}, headers=admin_headers).json()
        assert final["total"] == 2

    def test_disagreement_goes_to_third_round(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        submit(client, markers[0], assign(client, admin_headers, block, markers[0], 1), 8.0)
        submit(client, markers[1], assign(client, admin_headers, block, markers[1], 2), 6.0)

        comparison = client.get(f"/api/grading/compare/{block.block_code}", headers=admin_headers).json()
        assert comparison["status"] == "NEEDS_THIRD_ROUND"
        assert comparison["score_difference"] == 2.0

        lenient = client.get(
            f"/api/grading/compare/{block.block_code}", params={"max_difference": 2}, headers=admin_headers
        ).json()
        assert lenient["status"] == "MATCHED"

        not_yet = client.post(f"/api/grading/approve/{block.block_code}", json={}, headers=admin_headers)
        assert not_yet.status_code == 409
        assert not_yet.json()["kind"] == "NotResolvable"

        response = client.post(f"/api/grading/assign-third-round/{block.block_code}", json={}, headers=admin_headers)
        assert response.status_code == 201
        third = response.json()
        assert third["round_number"] == 3
        assert third["priority"] == "HIGH"
        assert third["examiner_id"] == str(markers[2].examiner.examiner_id)

        resolved = submit(client, markers[2], third, 7.8)
        assert resolved["comparison"]["status"] == "RESOLVED_BY_THIRD"
        assert resolved["comparison"]["final_score"] == 7.9

        again = client.post(f"/api/grading/assign-third-round/{block.block_code}", json={}, headers=admin_headers)
        assert again.status_code == 409

    def test_override_requires_reasonable_score(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        submit(client, markers[0], assign(client, admin_headers, block, markers[0], 1), 8.0)
        submit(client, markers[1], assign(client, admin_headers, block, markers[1], 2), 8.5)

        too_high = client.post(
            f"/api/grading/approve/{block.block_code}", json={"final_score": 11}, headers=admin_headers
        )
        assert too_high.status_code == 400
        assert too_high.json()["kind"] == "OutOfRange"

        response = client.post(
            f"/api/grading/approve/{block.block_code}",
            json={"final_score": 8.5, "decision_reason": "second reading is fairer"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["block"]["decision_reason"] == "second reading is fairer"

        twice = client.post(f"/api/grading/approve/{block.block_code}", json={}, headers=admin_headers)
        assert twice.status_code == 409
        assert twice.json()["kind"] == "AlreadyApproved"


class TestErrors(object):
    """Workflow errors surface as a status code and a {kind, message} body."""

    def test_duplicate_assignment(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assign(client, admin_headers, block, markers[0], 1)

        response = client.post(
            "/api/grading/assignments",
            json={"block_code": block.block_code, "examiner_id": str(markers[0].examiner.examiner_id), "round_number": 1},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "DuplicateAssignment"
        assert response.json()["message"]

    def test_score_out_of_range(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assignment = assign(client, admin_headers, block, markers[0], 1)

        response = client.post(
            "/api/grading/results",
            json={"assignment_id": assignment["assignment_id"], "score": 10.5},
            headers=markers[0].headers,
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "OutOfRange"

    def test_unknown_block(self, client: TestClient, admin_headers: dict[str, str]) -> None:
        response = client.get("/api/grading/compare/NOPE-1", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["kind"] == "BlockNotFound"

    def test_other_examiners_assignment_is_not_found(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assignment = assign(client, admin_headers, block, markers[0], 1)

        response = client.post(
            "/api/grading/results",
            json={"assignment_id": assignment["assignment_id"], "score": 5},
            headers=markers[1].headers,
        )

        assert response.status_code == 404
        assert response.json()["kind"] == "AssignmentNotFound"

    def test_second_submission_conflicts(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assignment = assign(client, admin_headers, block, markers[0], 1)
        submit(client, markers[0], assignment, 6)

        response = client.post(
            "/api/grading/results",
            json={"assignment_id": assignment["assignment_id"], "score": 6},
            headers=markers[0].headers,
        )

        assert response.status_code == 409
        assert response.json()["kind"] == "AlreadySubmitted"


class TestAssignments(object):
    """Tests for the assignment management endpoints."""

    def test_auto_assign(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        block_factory: t.Callable[..., AnswerBlock],
        markers: list[Marker],
    ) -> None:
        codes = [block_factory().block_code for _ in range(2)]

        response = client.post(
            "/api/grading/assignments/auto-assign",
            json={"block_codes": [*codes, "MISSING-1"]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success_count"] == 2
        assert data["failure_count"] == 1
        assert [r["block_code"] for r in data["results"]] == [*codes, "MISSING-1"]
        assert data["results"][2]["success"] is False
        assert data["results"][2]["reason"]
        for outcome in data["results"][:2]:
            assert sorted(a["round_number"] for a in outcome["assignments"]) == [1, 2]
            assert len({a["examiner_id"] for a in outcome["assignments"]}) == 2

        pending = client.get("/api/grading/pending-blocks", headers=admin_headers).json()
        assert pending["total"] == 0

    def test_auto_assign_rejects_three_per_block(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock
    ) -> None:
        response = client.post(
            "/api/grading/assignments/auto-assign",
            json={"block_codes": [block.block_code], "examiners_per_block": 3},
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_list_filter_and_page(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        block_factory: t.Callable[..., AnswerBlock],
        markers: list[Marker],
    ) -> None:
        for _ in range(3):
            assign(client, admin_headers, block_factory(), markers[0], 1)
        assign(client, admin_headers, block_factory(), markers[1], 2, priority="LOW")

        page = client.get("/api/grading/assignments", params={"limit": 2, "offset": 1}, headers=admin_headers).json()
        assert page["total"] == 4
        assert page["limit"] == 2
        assert page["offset"] == 1
        assert len(page["assignments"]) == 2

        low = client.get("/api/grading/assignments", params={"priority": "LOW"}, headers=admin_headers).json()
        assert low["total"] == 1

        mine = client.get(
            "/api/grading/assignments",
            params={"examiner_id": str(markers[0].examiner.examiner_id), "status": "ASSIGNED"},
            headers=admin_headers,
        ).json()
        assert mine["total"] == 3

        capped = client.get("/api/grading/assignments", params={"limit": 10_000}, headers=admin_headers).json()
        assert capped["limit"] == 200

    def test_my_assignments(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        first = assign(client, admin_headers, block, markers[0], 1)
        assign(client, admin_headers, block, markers[1], 2)
        submit(client, markers[0], first, 7)

        response = client.get("/api/grading/my-assignments", headers=markers[0].headers)

        assert response.status_code == 200
        data = response.json()
        assert data["examiner_id"] == str(markers[0].examiner.examiner_id)
        assert data["total"] == 1
        assert data["assignments"][0]["status"] == "COMPLETED"
        assert data["stats"]["completed"] == 1

    def test_update_and_delete(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assignment = assign(client, admin_headers, block, markers[0], 1)
        url = f"/api/grading/assignments/{assignment['assignment_id']}"

        updated = client.put(url, json={"priority": "HIGH", "status": "IN_PROGRESS"}, headers=admin_headers)
        assert updated.status_code == 200
        assert updated.json()["priority"] == "HIGH"
        assert updated.json()["status"] == "IN_PROGRESS"

        completing = client.put(url, json={"status": "COMPLETED"}, headers=admin_headers)
        assert completing.status_code == 400
        assert completing.json()["kind"] == "InvalidStatusTransition"

        deleted = client.delete(url, headers=admin_headers)
        assert deleted.status_code == 200
        assert deleted.json()["assignment_id"] == assignment["assignment_id"]

        assert client.get(url, headers=admin_headers).status_code == 404

    def test_cannot_delete_completed(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        assignment = assign(client, admin_headers, block, markers[0], 1)
        submit(client, markers[0], assignment, 4)

        response = client.delete(f"/api/grading/assignments/{assignment['assignment_id']}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["kind"] == "CannotDeleteCompleted"


class TestResultsAndStats(object):
    """Tests for result editing and the stats endpoints."""

    def test_edit_comments_but_not_score(
        self, client: TestClient, admin_headers: dict[str, str], block: AnswerBlock, markers: list[Marker]
    ) -> None:
        submitted = submit(client, markers[0], assign(client, admin_headers, block, markers[0], 1), 6.5)
        url = f"/api/grading/results/{submitted['result']['result_id']}"

        edited = client.put(url, json={"comments": "partial method"}, headers=admin_headers)
        assert edited.status_code == 200
        assert edited.json()["comments"] == "partial method"
        assert edited.json()["score"] == 6.5

        rescored = client.put(url, json={"score": 7}, headers=admin_headers)
        assert rescored.status_code == 409
        assert rescored.json()["kind"] == "ResultImmutable"

    def test_stats(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        block_factory: t.Callable[..., AnswerBlock],
        markers: list[Marker],
    ) -> None:
        graded = block_factory()
        block_factory()
        submit(client, markers[0], assign(client, admin_headers, graded, markers[0], 1), 8)
        submit(client, markers[1], assign(client, admin_headers, graded, markers[1], 2), 9)
        client.post(f"/api/grading/approve/{graded.block_code}", json={}, headers=admin_headers)

        data = client.get("/api/grading/stats", headers=admin_headers).json()

        assert data["assignments"]["total"] == 2
        assert data["assignments"]["completed"] == 2
        assert data["results"]["total_graded"] == 2
        assert data["results"]["final_count"] == 2
        assert data["results"]["avg_score"] == 8.5
        assert data["blocks"] == {"total": 2, "approved": 1, "pending_approval": 1}

    def test_pending_blocks(
        self,
        client: TestClient,
        admin_headers: dict[str, str],
        block_factory: t.Callable[..., AnswerBlock],
        markers: list[Marker],
    ) -> None:
        half = block_factory()
        fresh = block_factory()
        assign(client, admin_headers, half, markers[0], 1)

        data = client.get("/api/grading/pending-blocks", headers=admin_headers).json()

        assert data["total"] == 2
        rounds = {b["block_code"]: b["assigned_rounds"] for b in data["blocks"]}
        assert rounds == {half.block_code: [1], fresh.block_code: []}
