"""Tests for branch manager and staff assignment."""

import pytest

from restohub.core.errors import ForbiddenError, ValidationError
from restohub.models.branch import Branch
from restohub.services.branch_service import BranchService

from conftest import auth_headers, principal

BRANCHES = "/api/v1/branches"


@pytest.fixture
def empty_branch(db_session):
    branch = Branch(name="Harbour", address="7 Pier Way", phone="555-0103")
    db_session.add(branch)
    db_session.commit()
    return branch


class TestAssignManager:

    def test_assign_free_manager(self, client, world, empty_branch):
        res = client.put(
            f"{BRANCHES}/{empty_branch.id}/manager",
            headers=auth_headers(world["hq"]),
            json={"user_id": world["bm_free"].id},
        )
        assert res.status_code == 200
        assert res.json()["manager_id"] == world["bm_free"].id

    def test_manager_of_another_branch_rejected(self, db_session, world, empty_branch):
        with pytest.raises(ValidationError) as exc_info:
            BranchService(db_session).assign_manager(empty_branch.id, world["bm1"].id)
        assert "already manages" in exc_info.value.detail

    def test_reassigning_current_manager_is_allowed(self, db_session, world):
        branch = BranchService(db_session).assign_manager(world["downtown"].id, world["bm1"].id)
        assert branch.manager_id == world["bm1"].id

    def test_non_manager_role_rejected(self, client, world, empty_branch):
        res = client.put(
            f"{BRANCHES}/{empty_branch.id}/manager",
            headers=auth_headers(world["admin"]),
            json={"user_id": world["chef1"].id},
        )
        assert res.status_code == 400
        assert res.json()["field"] == "user_id"

    def test_unknown_branch_or_user(self, client, world, empty_branch):
        headers = auth_headers(world["admin"])
        assert client.put(
            f"{BRANCHES}/9999/manager", headers=headers, json={"user_id": world["bm_free"].id}
        ).status_code == 404
        assert client.put(
            f"{BRANCHES}/{empty_branch.id}/manager", headers=headers, json={"user_id": 9999}
        ).status_code == 404

    def test_branch_manager_cannot_assign_managers(self, client, world, empty_branch):
        res = client.put(
            f"{BRANCHES}/{empty_branch.id}/manager",
            headers=auth_headers(world["bm1"]),
            json={"user_id": world["bm_free"].id},
        )
        assert res.status_code == 403


class TestAssignStaff:

    def test_branch_manager_pulls_unassigned_cashier(self, client, world):
        res = client.put(
            f"{BRANCHES}/staff/{world['cashier_unassigned'].id}",
            headers=auth_headers(world["bm2"]),
            json={},
        )
        assert res.status_code == 200
        assert res.json()["branch_id"] == world["uptown"].id

        queue = client.get("/api/v1/orders/pending", headers=auth_headers(world["cashier_unassigned"]))
        assert queue.status_code == 200

    def test_branch_manager_cannot_target_other_branch(self, db_session, world):
        with pytest.raises(ForbiddenError):
            BranchService(db_session).assign_staff(
                principal(world["bm2"]), world["cashier_unassigned"].id, world["downtown"].id
            )

    def test_branch_manager_cannot_poach_staff(self, db_session, world):
        with pytest.raises(ForbiddenError):
            BranchService(db_session).assign_staff(principal(world["bm2"]), world["chef1"].id)

    def test_headquarters_moves_staff(self, db_session, world):
        user = BranchService(db_session).assign_staff(
            principal(world["admin"]), world["chef1"].id, world["uptown"].id
        )
        assert user.branch_id == world["uptown"].id

    def test_headquarters_must_name_branch(self, db_session, world):
        with pytest.raises(ValidationError):
            BranchService(db_session).assign_staff(principal(world["hq"]), world["chef1"].id)

    def test_only_chefs_and_cashiers(self, client, world):
        res = client.put(
            f"{BRANCHES}/staff/{world['customer'].id}",
            headers=auth_headers(world["admin"]),
            json={"branch_id": world["downtown"].id},
        )
        assert res.status_code == 400

    def test_cashier_cannot_assign(self, client, world):
        res = client.put(
            f"{BRANCHES}/staff/{world['cashier_unassigned'].id}",
            headers=auth_headers(world["cashier1"]),
            json={"branch_id": world["downtown"].id},
        )
        assert res.status_code == 403
