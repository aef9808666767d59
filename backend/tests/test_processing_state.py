"""Tests for processing state derived from installment history."""

from datetime import timedelta

import pytest

from recurring.models.installment import Installment, InstallmentState
from recurring.models.subscription import ProcessingState
from recurring.repositories.subscription_repository import parse_processing_state
from recurring.services.processing_state import ProcessingStateService
from tests.conftest import NOW, create_subscription


@pytest.fixture
def service(db_session):
    return ProcessingStateService(db_session)


def _add_installment(db_session, subscription, state, age_days):
    installment = Installment(
        subscription_id=subscription.id,
        state=state.value,
        created_at=NOW - timedelta(days=age_days),
    )
    db_session.add(installment)
    db_session.commit()
    return installment


class TestParseProcessingState:
    def test_accepts_strings_and_members(self):
        assert parse_processing_state("failed") == ProcessingState.FAILED
        assert parse_processing_state(ProcessingState.SUCCESS) == ProcessingState.SUCCESS

    def test_rejects_unknown_state(self):
        with pytest.raises(ValueError, match="state must be one of pending, success, failed"):
            parse_processing_state("foo")


class TestProcessingState:
    def test_states(self):
        assert ProcessingStateService.processing_states() == [
            ProcessingState.PENDING,
            ProcessingState.SUCCESS,
            ProcessingState.FAILED,
        ]

    def test_pending_without_installments(self, db_session, service):
        subscription = create_subscription(db_session)
        assert service.processing_state(subscription) == ProcessingState.PENDING

    def test_follows_latest_installment(self, db_session, service):
        subscription = create_subscription(db_session)
        _add_installment(db_session, subscription, InstallmentState.SUCCESS, age_days=30)
        _add_installment(db_session, subscription, InstallmentState.FAILED, age_days=1)

        assert service.processing_state(subscription) == ProcessingState.FAILED

    def test_pending_installment(self, db_session, service):
        subscription = create_subscription(db_session)
        _add_installment(db_session, subscription, InstallmentState.FAILED, age_days=30)
        _add_installment(db_session, subscription, InstallmentState.PENDING, age_days=0)

        assert service.processing_state(subscription) == ProcessingState.PENDING


class TestInProcessingState:
    @pytest.fixture
    def subscriptions(self, db_session):
        never = create_subscription(db_session, user_id="never")
        succeeded = create_subscription(db_session, user_id="succeeded")
        _add_installment(db_session, succeeded, InstallmentState.FAILED, age_days=20)
        _add_installment(db_session, succeeded, InstallmentState.SUCCESS, age_days=2)
        failed = create_subscription(db_session, user_id="failed")
        _add_installment(db_session, failed, InstallmentState.SUCCESS, age_days=20)
        _add_installment(db_session, failed, InstallmentState.FAILED, age_days=2)
        return {"never": never, "succeeded": succeeded, "failed": failed}

    def test_success(self, service, subscriptions):
        result = service.in_processing_state("success")
        assert [s.user_id for s in result] == ["succeeded"]

    def test_failed(self, service, subscriptions):
        result = service.in_processing_state(ProcessingState.FAILED)
        assert [s.user_id for s in result] == ["failed"]

    def test_pending_includes_never_processed(self, service, subscriptions):
        result = service.in_processing_state("pending")
        assert [s.user_id for s in result] == ["never"]

    def test_unknown_state(self, service, subscriptions):
        with pytest.raises(ValueError, match="state must be one of"):
            service.in_processing_state("foo")


class TestSameTimestampInstallments:
    def test_latest_is_stable_and_matches_filter(self, db_session, service):
        subscription = create_subscription(db_session)
        first = _add_installment(db_session, subscription, InstallmentState.SUCCESS, age_days=0)
        second = _add_installment(db_session, subscription, InstallmentState.FAILED, age_days=0)
        expected = max([first, second], key=lambda i: str(i.id))

        state = service.processing_state(subscription)

        assert state == ProcessingState(expected.state)
        assert service.processing_state(subscription) == state
        assert [s.id for s in service.in_processing_state(state)] == [subscription.id]
