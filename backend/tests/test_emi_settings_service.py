"""Unit tests for EMI settings validation, start and service-fee bookkeeping."""

from datetime import datetime, timezone
from pathlib import Path
import sys
import unittest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from models.exceptions import ModelValidationError, PreconditionError
from models.loans import LoanRecord
from services.emi_settings_service import EmiSettingsService, validate_emi_settings


NOW = datetime(2024, 1, 20, 10, 0, tzinfo=timezone.utc)
VALID_SETTINGS = {"emi_date": 5, "emi_percent": 12, "tenure_months": 12}


class ValidateEmiSettingsTests(unittest.TestCase):
    """Bounds and presence checks on raw schedule input."""

    def test_valid_settings(self) -> None:
        settings = validate_emi_settings(VALID_SETTINGS)
        self.assertEqual(settings.emi_date, 5)
        self.assertEqual(settings.emi_percent, 12.0)
        self.assertEqual(settings.tenure_months, 12)

    def test_missing_fields(self) -> None:
        with self.assertRaises(ModelValidationError) as ctx:
            validate_emi_settings({"emi_date": 5})
        self.assertEqual(ctx.exception.message, "EMI date, percentage, and tenure are required")

    def test_zero_percent_is_rejected(self) -> None:
        with self.assertRaises(ModelValidationError):
            validate_emi_settings({"emi_date": 5, "emi_percent": 0, "tenure_months": 12})

    def test_out_of_range_values(self) -> None:
        cases = [
            ({"emi_date": 32, "emi_percent": 12, "tenure_months": 12}, "EMI date must be between 1 and 31"),
            ({"emi_date": 5, "emi_percent": 101, "tenure_months": 12}, "EMI percentage must be between 0 and 100"),
            ({"emi_date": 5, "emi_percent": 12, "tenure_months": 61}, "Tenure must be between 1 and 60 months"),
        ]
        for payload, message in cases:
            with self.subTest(payload=payload):
                with self.assertRaises(ModelValidationError) as ctx:
                    validate_emi_settings(payload)
                self.assertEqual(ctx.exception.message, message)

    def test_boundary_values_accepted_exactly(self) -> None:
        cases = [
            ("emi_date", 1),
            ("emi_date", 31),
            ("tenure_months", 1),
            ("tenure_months", 60),
            ("emi_percent", 100),
            ("emi_percent", 0.5),
        ]
        for field, value in cases:
            with self.subTest(field=field, value=value):
                payload = dict(VALID_SETTINGS)
                payload[field] = value
                settings = validate_emi_settings(payload)
                self.assertEqual(getattr(settings, field), value)

    def test_below_range_values_rejected(self) -> None:
        cases = [
            ("emi_date", -1, "EMI date must be between 1 and 31"),
            ("emi_percent", -0.01, "EMI percentage must be between 0 and 100"),
            ("tenure_months", -3, "Tenure must be between 1 and 60 months"),
        ]
        for field, value, message in cases:
            with self.subTest(field=field, value=value):
                payload = dict(VALID_SETTINGS)
                payload[field] = value
                with self.assertRaises(ModelValidationError) as ctx:
                    validate_emi_settings(payload)
                self.assertEqual(ctx.exception.message, message)

    def test_non_finite_values_rejected(self) -> None:
        for field in ("emi_date", "emi_percent", "tenure_months"):
            for value in (float("inf"), float("-inf"), float("nan"), 10**400):
                with self.subTest(field=field, value=value):
                    payload = dict(VALID_SETTINGS)
                    payload[field] = value
                    with self.assertRaises(ModelValidationError) as ctx:
                        validate_emi_settings(payload)
                    self.assertEqual(ctx.exception.message, "EMI date, percentage, and tenure must be numeric")

    def test_non_numeric_values(self) -> None:
        with self.assertRaises(ModelValidationError):
            validate_emi_settings({"emi_date": "5", "emi_percent": 12, "tenure_months": 12})
        with self.assertRaises(ModelValidationError):
            validate_emi_settings({"emi_date": 5.5, "emi_percent": 12, "tenure_months": 12})


class EmiSettingsServiceTests(unittest.TestCase):
    """Start, configure and sync flows."""

    def setUp(self) -> None:
        self.service = EmiSettingsService(clock=lambda: NOW)
        self.record = LoanRecord(id="loan_1", user_id="usr_1", amount=12000)

    def test_start_requires_service_fee(self) -> None:
        with self.assertRaises(PreconditionError) as ctx:
            self.service.start(self.record, VALID_SETTINGS, NOW)
        self.assertEqual(ctx.exception.message, "Service fee must be paid before starting EMI")

    def test_invalid_settings_checked_before_fee(self) -> None:
        with self.assertRaises(ModelValidationError):
            self.service.start(self.record, {"emi_date": 40, "emi_percent": 12, "tenure_months": 12}, NOW)

    def test_start_sets_first_due_date_next_month(self) -> None:
        paid = self.service.mark_service_fee(self.record, True, NOW)
        started = self.service.start(paid, VALID_SETTINGS, NOW)
        self.assertFalse(started.emi_started)
        self.assertEqual(started.emi_started_at, datetime(2024, 2, 5, tzinfo=timezone.utc))
        self.assertEqual(started.emi_date, 5)
        self.assertEqual(started.principal_amount, 12000)

    def test_start_clamps_due_day(self) -> None:
        paid = self.service.mark_service_fee(self.record, True, NOW)
        started = self.service.start(paid, {"emi_date": 31, "emi_percent": 10, "tenure_months": 6}, NOW)
        self.assertEqual(started.emi_started_at, datetime(2024, 2, 29, tzinfo=timezone.utc))

    def test_configure_keeps_anchor(self) -> None:
        anchor = datetime(2024, 2, 5, tzinfo=timezone.utc)
        record = self.record.with_updates(emi_started_at=anchor, emi_date=5, emi_percent=12, tenure_months=12)
        updated = self.service.configure(record, {"emi_date": 10, "emi_percent": 14, "tenure_months": 24})
        self.assertEqual(updated.emi_started_at, anchor)
        self.assertEqual(updated.emi_date, 10)
        self.assertEqual(updated.tenure_months, 24)

    def test_mark_service_fee_unpaid_clears_timestamp(self) -> None:
        paid = self.service.mark_service_fee(self.record, True, NOW)
        self.assertEqual(paid.service_fee_paid_at, NOW)
        unpaid = self.service.mark_service_fee(paid, False, NOW)
        self.assertFalse(unpaid.service_fee_paid)
        self.assertIsNone(unpaid.service_fee_paid_at)

    def test_sync_emi_started(self) -> None:
        record = self.record.with_updates(emi_started_at=datetime(2024, 2, 5, tzinfo=timezone.utc))
        unchanged, changed = self.service.sync_emi_started(record, NOW)
        self.assertFalse(changed)
        self.assertFalse(unchanged.emi_started)

        later = datetime(2024, 2, 5, 8, 0, tzinfo=timezone.utc)
        synced, changed = self.service.sync_emi_started(record, later)
        self.assertTrue(changed)
        self.assertTrue(synced.emi_started)


if __name__ == "__main__":
    unittest.main()
