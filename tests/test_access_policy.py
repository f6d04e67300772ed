import pytest

from taskhub.core.exceptions import BusinessException, ErrorCode
from taskhub.models.enums import UserRole
from taskhub.services.access_policy import AccessPolicy, Operation, Ownership, Principal

from .conftest import ASSIGNEE_ID, CREATOR_ID

policy = AccessPolicy()
OWNERSHIP = Ownership(creator_id=CREATOR_ID, assignee_id=ASSIGNEE_ID)

ADMIN_ONLY = [Operation.LIST, Operation.CREATE, Operation.UPDATE, Operation.DELETE]
OWNER_OR_ADMIN = [Operation.READ, Operation.DOWNLOAD_DOCUMENT, Operation.CHANGE_STATUS]


class TestAdminOnlyOperations:
    @pytest.mark.parametrize("operation", ADMIN_ONLY)
    def test_admin_allowed(self, admin, operation):
        assert policy.evaluate(admin, operation, OWNERSHIP).allowed

    @pytest.mark.parametrize("operation", ADMIN_ONLY)
    def test_creator_and_assignee_denied(self, creator, assignee, operation):
        # Owning a task does not grant full-update/delete rights
        assert not policy.evaluate(creator, operation, OWNERSHIP).allowed
        assert not policy.evaluate(assignee, operation, OWNERSHIP).allowed

    def test_update_denial_reason(self, assignee):
        decision = policy.evaluate(assignee, Operation.UPDATE, OWNERSHIP)
        assert "Only administrators can edit tasks" in decision.reason


class TestOwnerOperations:
    @pytest.mark.parametrize("operation", OWNER_OR_ADMIN)
    def test_admin_creator_assignee_allowed(self, admin, creator, assignee, operation):
        for principal in (admin, creator, assignee):
            assert policy.evaluate(principal, operation, OWNERSHIP).allowed

    @pytest.mark.parametrize("operation", OWNER_OR_ADMIN)
    def test_outsider_denied(self, outsider, operation):
        decision = policy.evaluate(outsider, operation, OWNERSHIP)
        assert not decision.allowed
        assert decision.reason

    def test_missing_ownership_only_admin(self, admin, assignee):
        assert policy.evaluate(admin, Operation.READ).allowed
        assert not policy.evaluate(assignee, Operation.READ).allowed

    def test_change_status_reason(self, outsider):
        decision = policy.evaluate(outsider, Operation.CHANGE_STATUS, OWNERSHIP)
        assert decision.reason == "Not authorized to update this task status"


class TestUserResourceRule:
    def test_self_allowed(self, assignee):
        assert policy.evaluate(assignee, Operation.READ_USER, target_user_id=ASSIGNEE_ID).allowed
        assert policy.evaluate(assignee, Operation.UPDATE_USER, target_user_id=ASSIGNEE_ID).allowed

    def test_other_user_denied(self, assignee):
        assert not policy.evaluate(assignee, Operation.READ_USER, target_user_id=CREATOR_ID).allowed

    def test_task_ownership_does_not_grant_user_access(self, assignee):
        # Ownership facts are ignored for user-resource operations
        decision = policy.evaluate(assignee, Operation.READ_USER, OWNERSHIP, target_user_id=CREATOR_ID)
        assert not decision.allowed

    def test_admin_allowed(self, admin):
        assert policy.evaluate(admin, Operation.UPDATE_USER, target_user_id=CREATOR_ID).allowed


class TestEnforce:
    def test_denial_raises_forbidden(self, outsider):
        with pytest.raises(BusinessException) as exc_info:
            policy.enforce(outsider, Operation.READ, OWNERSHIP)
        assert exc_info.value.error_code == ErrorCode.FORBIDDEN
        assert exc_info.value.error_code.http_status == 403

    def test_allowed_returns_none(self, assignee):
        assert policy.enforce(assignee, Operation.READ, OWNERSHIP) is None

    def test_principal_is_admin(self):
        assert Principal(id="x", role=UserRole.ADMIN).is_admin
        assert not Principal(id="x").is_admin
