"""Unit tests for the authorization gate and role-filtered projections."""

from datetime import datetime, timezone
from pathlib import Path
import sys
import unittest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.enums import UserRole
from models.exceptions import BlockedError, ForbiddenError, SelfActionError, UnauthenticatedError
from models.loans import LoanRecord
from models.users import Principal
from services.authorization import AuthorizationGate, project_loan
from services.principal_resolver import extract_bearer_token


USER = Principal(identity="usr_1", role=UserRole.USER)
OTHER_USER = Principal(identity="usr_2", role=UserRole.USER)
STAFF = Principal(identity="staff_1", role=UserRole.STAFF)
ADMIN = Principal(identity="admin_1", role=UserRole.ADMIN)


class AuthorizationGateTests(unittest.TestCase):
    """Role hierarchy, blocking and ownership override."""

    def setUp(self) -> None:
        self.gate = AuthorizationGate()

    def test_missing_principal_is_unauthenticated(self) -> None:
        with self.assertRaises(UnauthenticatedError):
            self.gate.authorize(None, UserRole.USER)

    def test_blocked_principal_rejected_even_as_admin(self) -> None:
        blocked = Principal(identity="admin_2", role=UserRole.ADMIN, blocked=True)
        with self.assertRaises(BlockedError) as ctx:
            self.gate.authorize(blocked, UserRole.USER)
        self.assertEqual(ctx.exception.to_payload()["redirect"], "/blocked")

    def test_higher_roles_subsume_lower(self) -> None:
        self.assertIs(self.gate.authorize(ADMIN, UserRole.STAFF), ADMIN)
        self.assertIs(self.gate.authorize(STAFF, UserRole.STAFF), STAFF)
        self.assertIs(self.gate.authorize(USER, UserRole.USER), USER)

    def test_insufficient_role_message(self) -> None:
        with self.assertRaises(ForbiddenError) as ctx:
            self.gate.authorize(USER, UserRole.STAFF)
        self.assertEqual(ctx.exception.message, "Forbidden - Staff access required")
        with self.assertRaises(ForbiddenError):
            self.gate.authorize(STAFF, UserRole.ADMIN)

    def test_owner_override(self) -> None:
        allowed = self.gate.authorize(USER, UserRole.STAFF, owner_id="usr_1", allow_owner=True)
        self.assertIs(allowed, USER)
        with self.assertRaises(ForbiddenError) as ctx:
            self.gate.authorize(OTHER_USER, UserRole.STAFF, owner_id="usr_1", allow_owner=True)
        self.assertEqual(ctx.exception.message, "Forbidden")

    def test_owner_override_requires_opt_in(self) -> None:
        with self.assertRaises(ForbiddenError):
            self.gate.authorize(USER, UserRole.STAFF, owner_id="usr_1")

    def test_self_action_guard(self) -> None:
        with self.assertRaises(SelfActionError) as ctx:
            self.gate.guard_self_action(STAFF, "staff_1", "block")
        self.assertEqual(ctx.exception.message, "Cannot block your own account")
        self.gate.guard_self_action(STAFF, "usr_1", "block")


class ProjectionTests(unittest.TestCase):
    """Plain users never see staff-only fields or internal notes."""

    def setUp(self) -> None:
        created = datetime(2024, 1, 10, tzinfo=timezone.utc)
        self.record = LoanRecord(
            id="loan_1",
            user_id="usr_1",
            amount=12000,
            staff_assigned="staff_1",
            admin_approved_by="admin_1",
            penalty_waived_by="staff_1",
            other_service="  ",
            store={
                "id": "store_1",
                "name": "Corner Clinic",
                "owner_email": "owner@example.com",
                "owner_pancard": "ABCDE1234F",
                "gstin_no": "22AAAAA0000A1Z5",
                "partner_name": "Partner",
            },
            owner={"id": "usr_1", "email": "person@example.com", "full_name": "Person"},
            notes=[
                {"id": "n1", "created_by": "staff_1", "content": "Visible update", "internal": False, "created_at": created},
                {"id": "n2", "created_by": "staff_1", "content": "Risk flag", "internal": True, "created_at": created},
            ],
        )

    def test_user_projection_hides_staff_fields(self) -> None:
        view = project_loan(self.record, UserRole.USER)
        for hidden in ("staff_assigned", "admin_approved_by", "penalty_waived_by", "version", "is_deleted"):
            self.assertNotIn(hidden, view)
        self.assertEqual(view["amount"], 12000)
        self.assertEqual(view["owner"]["email"], "person@example.com")

    def test_user_projection_trims_store(self) -> None:
        store = project_loan(self.record, UserRole.USER)["store"]
        self.assertEqual(store["owner_email"], "owner@example.com")
        for hidden in ("owner_pancard", "gstin_no", "partner_name", "approved_by"):
            self.assertNotIn(hidden, store)

    def test_user_projection_drops_internal_notes(self) -> None:
        notes = project_loan(self.record, UserRole.USER)["notes"]
        self.assertEqual([note["id"] for note in notes], ["n1"])

    def test_blank_other_service_omitted(self) -> None:
        self.assertNotIn("other_service", project_loan(self.record, UserRole.USER))
        custom = self.record.with_updates(other_service="Dental aligners")
        self.assertEqual(project_loan(custom, UserRole.USER)["other_service"], "Dental aligners")

    def test_staff_sees_full_record(self) -> None:
        view = project_loan(self.record, UserRole.STAFF)
        self.assertEqual(view["staff_assigned"], "staff_1")
        self.assertEqual(view["store"]["owner_pancard"], "ABCDE1234F")
        self.assertEqual(len(view["notes"]), 2)

    def test_missing_summaries_project_to_none(self) -> None:
        bare = LoanRecord(id="loan_2", user_id="usr_1")
        view = project_loan(bare, UserRole.USER)
        self.assertIsNone(view["service"])
        self.assertIsNone(view["store"])


class BearerTokenTests(unittest.TestCase):
    def test_header_preferred_over_cookie(self) -> None:
        self.assertEqual(extract_bearer_token("Bearer abc", "cookie"), "abc")

    def test_cookie_fallback(self) -> None:
        self.assertEqual(extract_bearer_token(None, "cookie"), "cookie")
        self.assertEqual(extract_bearer_token("Basic xyz", "cookie"), "cookie")

    def test_no_credentials(self) -> None:
        self.assertIsNone(extract_bearer_token(None, None))
        self.assertIsNone(extract_bearer_token("Bearer ", None))


if __name__ == "__main__":
    unittest.main()
