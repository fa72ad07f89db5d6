"""
Unit tests for RegistrationService domain logic.

Tests the service against an in-memory repository, the in-memory host
platform and a mocked notifier to verify:
- Submission checks and the confirmation email
- Every confirmation outcome
- Editing after an admin request
- The expiry sweep
"""

from datetime import timedelta
from unittest.mock import Mock
from urllib.parse import parse_qs, urlparse

import pytest

from src.adapters.host.memory import InMemoryHostPlatform
from src.domain.exceptions import (
    AccountProvisioningFailed,
    ConflictReason,
    EmailAlreadyRegistered,
    InvalidToken,
    RecordNotEditable,
    RecordNotFound,
    TenantNotFound,
)
from src.domain.ports import ConfirmResult
from src.domain.records import ApprovalStatus
from src.domain.registration import RegistrationService
from src.domain.tokens import TokenCodec
from tests.fakes import NOW, TENANT_ID, InMemoryRegistrationRepository, make_candidate


def token_from_link(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


class TestSubmit:
    def test_submit_stores_pending_unconfirmed_record(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository
    ) -> None:
        record_id = registration_service.submit(make_candidate(email="  Jane@Example.COM "))

        record = repository.find(record_id=record_id)
        assert record.email == "jane@example.com"
        assert record.confirmed is False
        assert record.approved == ApprovalStatus.PENDING
        assert record.assessor is None
        assert record.time_created == NOW
        assert record.interests == ("genomics", "ecology")

    def test_submit_sends_confirmation_email(
        self, registration_service: RegistrationService, notifier: Mock, codec: TokenCodec
    ) -> None:
        record_id = registration_service.submit(make_candidate())

        notifier.send_email.assert_called_once()
        to, subject, body = notifier.send_email.call_args[0]
        assert to == "jane@example.com"
        assert subject == "Test Site: Account confirmation."
        assert "within the next 24 hours" in body
        assert f"https://learn.example.com/v1/registrations/{record_id}/confirm?token=" in body

        link = next(line for line in body.splitlines() if line.startswith("https://"))
        assert codec.decode(token_from_link(link)) == "jane@example.com"

    def test_submit_survives_email_failure(
        self,
        registration_service: RegistrationService,
        notifier: Mock,
        repository: InMemoryRegistrationRepository,
    ) -> None:
        """The record is kept even when the confirmation email cannot be sent."""
        notifier.send_email.side_effect = ConnectionError("smtp down")

        record_id = registration_service.submit(make_candidate())

        assert repository.find(record_id=record_id) is not None

    def test_duplicate_record_rejected(self, registration_service: RegistrationService) -> None:
        registration_service.submit(make_candidate())

        with pytest.raises(EmailAlreadyRegistered) as exc_info:
            registration_service.submit(make_candidate(email="JANE@example.com"))

        assert exc_info.value.reason is ConflictReason.RECORD_EXISTS

    def test_existing_account_rejected(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository
    ) -> None:
        with pytest.raises(EmailAlreadyRegistered) as exc_info:
            registration_service.submit(make_candidate(email="bioadmin@localhost"))

        assert exc_info.value.reason is ConflictReason.ACCOUNT_EXISTS
        assert repository.records == {}

    def test_rejected_email_cannot_register_again(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository
    ) -> None:
        repository.add("jane@example.com", confirmed=True, approved=ApprovalStatus.REJECTED)

        with pytest.raises(EmailAlreadyRegistered) as exc_info:
            registration_service.submit(make_candidate())

        assert exc_info.value.reason is ConflictReason.REJECTED

    def test_unknown_tenant_rejected(self, registration_service: RegistrationService) -> None:
        with pytest.raises(TenantNotFound):
            registration_service.submit(make_candidate(tenant_id=99))

    def test_lost_insert_race_reported_as_existing_record(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository
    ) -> None:
        repository.insert = Mock(return_value=None)

        with pytest.raises(EmailAlreadyRegistered) as exc_info:
            registration_service.submit(make_candidate())

        assert exc_info.value.reason is ConflictReason.RECORD_EXISTS

    def test_validate_does_not_insert(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository
    ) -> None:
        candidate = registration_service.validate(make_candidate(email=" X@Example.com"))

        assert candidate.email == "x@example.com"
        assert repository.records == {}


class TestConfirm:
    @pytest.fixture
    def submit(self, registration_service: RegistrationService, notifier: Mock):
        """Submit a candidate and return (record_id, token from the email)."""

        def _submit(email: str = "jane@example.com") -> tuple[int, str]:
            record_id = registration_service.submit(make_candidate(email=email))
            body = notifier.send_email.call_args[0][2]
            link = next(line for line in body.splitlines() if line.startswith("https://"))
            notifier.reset_mock()
            return record_id, token_from_link(link)

        return _submit

    def test_untrusted_domain_is_held(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        host: InMemoryHostPlatform,
        submit,
    ) -> None:
        record_id, token = submit("jane@example.com")

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.CONFIRMED_HELD
        record = repository.find(record_id=record_id)
        assert record.confirmed is True
        assert record.approved == ApprovalStatus.PENDING
        assert record.assessor is None
        assert host.account_exists("jane@example.com") is False

    def test_trusted_domain_is_auto_approved(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        host: InMemoryHostPlatform,
        submit,
    ) -> None:
        record_id, token = submit("jane@trusted.org")

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.CONFIRMED_AUTO_APPROVED
        record = repository.find(record_id=record_id)
        assert record.confirmed is True
        assert record.approved == ApprovalStatus.APPROVED
        assert record.assessor == 2
        assert host.account_exists("jane@trusted.org") is True

        account_id = next(
            a.id for a in (host.get_account(i) for i in range(1, 10)) if a and a.email == "jane@trusted.org"
        )
        assert account_id in host.tenant_members(TENANT_ID)

    def test_tenant_admins_notified_on_confirmation(
        self,
        registration_service: RegistrationService,
        host: InMemoryHostPlatform,
        notifier: Mock,
        submit,
    ) -> None:
        record_id, token = submit()

        registration_service.confirm(record_id, token)

        recipients = [c.args[1] for c in notifier.send_in_app.call_args_list]
        assert recipients == host.list_tenant_admins(TENANT_ID)
        sender, _, subject, body = notifier.send_in_app.call_args[0]
        assert sender is None
        assert subject == "New user verified"
        assert "https://learn.example.com/v1/admin/registrations" in body

    def test_second_visit_is_already_confirmed_and_never_reprovisions(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        host: InMemoryHostPlatform,
        notifier: Mock,
        submit,
    ) -> None:
        record_id, token = submit("jane@trusted.org")
        registration_service.confirm(record_id, token)
        before = repository.find(record_id=record_id)
        notifier.reset_mock()
        host.create_account = Mock()

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.ALREADY_CONFIRMED
        host.create_account.assert_not_called()
        notifier.send_in_app.assert_not_called()
        assert repository.find(record_id=record_id) == before

    def test_invalid_token(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository, submit
    ) -> None:
        record_id, _ = submit()

        assert registration_service.confirm(record_id, "garbage") is ConfirmResult.INVALID_TOKEN
        assert repository.find(record_id=record_id).confirmed is False

    def test_token_for_another_email(
        self, registration_service: RegistrationService, codec: TokenCodec, submit
    ) -> None:
        record_id, _ = submit("jane@example.com")
        submit("john@example.com")

        result = registration_service.confirm(record_id, codec.encode("john@example.com"))

        assert result is ConfirmResult.INVALID_TOKEN

    def test_unknown_record(self, registration_service: RegistrationService, codec: TokenCodec) -> None:
        result = registration_service.confirm(404, codec.encode("jane@example.com"))
        assert result is ConfirmResult.INVALID_TOKEN

    def test_expired_record_left_in_place(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        clock: Mock,
        submit,
    ) -> None:
        record_id, token = submit()
        clock.return_value = NOW + timedelta(hours=25)

        assert registration_service.confirm(record_id, token) is ConfirmResult.EXPIRED
        record = repository.find(record_id=record_id)
        assert record is not None
        assert record.confirmed is False

    def test_confirm_just_inside_window(
        self, registration_service: RegistrationService, clock: Mock, submit
    ) -> None:
        record_id, token = submit()
        clock.return_value = NOW + timedelta(hours=23)

        assert registration_service.confirm(record_id, token) is ConfirmResult.CONFIRMED_HELD

    def test_write_exception_is_write_failed(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        notifier: Mock,
        submit,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        record_id, token = submit()
        repository.set_confirmed = Mock(side_effect=RuntimeError("connection lost"))

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.CONFIRM_WRITE_FAILED
        assert f"record {record_id}" in caplog.text
        notifier.send_in_app.assert_not_called()

    def test_write_not_applied_is_write_failed(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository, submit
    ) -> None:
        record_id, token = submit()
        repository.set_confirmed = Mock(return_value=False)

        assert registration_service.confirm(record_id, token) is ConfirmResult.CONFIRM_WRITE_FAILED

    def test_concurrent_confirmation_reports_already_confirmed(
        self, registration_service: RegistrationService, repository: InMemoryRegistrationRepository, submit
    ) -> None:
        """Another visit flipped the flag between our read and our write."""
        record_id, token = submit()

        def confirmed_elsewhere(rid, when):
            repository.records[rid].confirmed = True
            return False

        repository.set_confirmed = Mock(side_effect=confirmed_elsewhere)

        assert registration_service.confirm(record_id, token) is ConfirmResult.ALREADY_CONFIRMED

    def test_provisioning_failure_holds_without_approval(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        host: InMemoryHostPlatform,
        submit,
    ) -> None:
        record_id, token = submit("jane@trusted.org")
        host.create_account = Mock(side_effect=AccountProvisioningFailed("host down"))

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.CONFIRMED_HELD
        record = repository.find(record_id=record_id)
        assert record.confirmed is True
        assert record.approved == ApprovalStatus.PENDING
        assert record.assessor is None

    def test_failed_approval_write_removes_new_account(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        host: InMemoryHostPlatform,
        submit,
    ) -> None:
        record_id, token = submit("jane@trusted.org")
        repository.set_decision = Mock(return_value=False)

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.CONFIRMED_HELD
        assert host.account_exists("jane@trusted.org") is False
        assert repository.find(record_id=record_id).approved == ApprovalStatus.PENDING

    def test_tenant_attach_failure_still_approves(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        host: InMemoryHostPlatform,
        submit,
    ) -> None:
        record_id, token = submit("jane@trusted.org")
        host.attach_account_to_tenant = Mock(side_effect=RuntimeError("tenant service down"))

        result = registration_service.confirm(record_id, token)

        assert result is ConfirmResult.CONFIRMED_AUTO_APPROVED
        assert repository.find(record_id=record_id).approved == ApprovalStatus.APPROVED

    def test_notification_failure_does_not_change_result(
        self, registration_service: RegistrationService, notifier: Mock, submit
    ) -> None:
        record_id, token = submit()
        notifier.send_in_app.side_effect = RuntimeError("messaging down")

        assert registration_service.confirm(record_id, token) is ConfirmResult.CONFIRMED_HELD


class TestEditAfterRequest:
    @pytest.fixture
    def notified(self, repository: InMemoryRegistrationRepository):
        return repository.add(
            "jane@example.com", confirmed=True, approved=ApprovalStatus.NOTIFIED, assessor=7
        )

    def test_load_for_edit(
        self, registration_service: RegistrationService, codec: TokenCodec, notified
    ) -> None:
        record = registration_service.load_for_edit(notified.id, codec.encode("jane@example.com"))
        assert record.id == notified.id

    def test_load_unknown_record(self, registration_service: RegistrationService, codec: TokenCodec) -> None:
        with pytest.raises(RecordNotFound):
            registration_service.load_for_edit(999, codec.encode("jane@example.com"))

    def test_load_record_not_sent_back(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        codec: TokenCodec,
    ) -> None:
        pending = repository.add("jane@example.com", confirmed=True)
        with pytest.raises(RecordNotEditable):
            registration_service.load_for_edit(pending.id, codec.encode("jane@example.com"))

    def test_load_with_wrong_token(
        self, registration_service: RegistrationService, codec: TokenCodec, notified
    ) -> None:
        with pytest.raises(InvalidToken):
            registration_service.load_for_edit(notified.id, codec.encode("other@example.com"))

    def test_resubmit_reopens_and_keeps_identity(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        codec: TokenCodec,
        notifier: Mock,
        notified,
    ) -> None:
        edits = make_candidate(
            email="hijack@example.com", tenant_id=2, first_name="Janet", interests=("ecology",)
        )

        record = registration_service.resubmit(notified.id, codec.encode("jane@example.com"), edits)

        assert record.first_name == "Janet"
        assert record.interests == ("ecology",)
        assert record.email == "jane@example.com"
        assert record.tenant_id == TENANT_ID
        assert record.approved == ApprovalStatus.PENDING
        assert record.confirmed is True
        assert record.assessor == 7
        subject = notifier.send_in_app.call_args[0][2]
        assert subject == "User updated their registration application"

    def test_resubmit_after_concurrent_decision(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
        codec: TokenCodec,
        notified,
    ) -> None:
        repository.reopen = Mock(return_value=False)

        with pytest.raises(RecordNotEditable):
            registration_service.resubmit(notified.id, codec.encode("jane@example.com"), make_candidate())


class TestSweepAndLinks:
    def test_sweep_expired_uses_retention_window(
        self,
        registration_service: RegistrationService,
        repository: InMemoryRegistrationRepository,
    ) -> None:
        old = repository.add("old@example.com", created=NOW - timedelta(hours=25))
        repository.add("new@example.com", created=NOW - timedelta(hours=23))
        repository.add("done@example.com", created=NOW - timedelta(hours=100), confirmed=True)

        assert registration_service.sweep_expired() == [old.id]
        assert len(repository.records) == 2

    def test_edit_link(self, registration_service: RegistrationService, codec: TokenCodec) -> None:
        link = registration_service.edit_link(5, "jane@example.com")
        assert link.startswith("https://learn.example.com/v1/registrations/5/edit?token=")
        assert codec.decode(token_from_link(link)) == "jane@example.com"
