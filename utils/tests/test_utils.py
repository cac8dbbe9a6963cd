from unittest.mock import MagicMock, patch

import pytest
from django.db import OperationalError

from utils.api_responses import service_error_response
from utils.logging_utils import mask_value
from utils.service_base import BaseService, InvalidTransitionError, NotFoundError, PaymentInitiationError
from utils.transaction_utils import DeadlockError, TransactionError, retry_on_deadlock


@pytest.mark.unit
class TestRetryOnDeadlockUnit:
    def setup_method(self):
        self.calls = MagicMock(__name__="bump_counter")

    @patch("utils.transaction_utils.time.sleep")
    def test_retries_then_succeeds(self, mock_sleep):
        self.calls.side_effect = [OperationalError("Deadlock found when trying to get lock"), "ok"]
        wrapped = retry_on_deadlock(max_retries=3, delay=0.1)(self.calls)

        assert wrapped() == "ok"
        assert self.calls.call_count == 2
        mock_sleep.assert_called_once_with(0.1)

    @patch("utils.transaction_utils.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        self.calls.side_effect = OperationalError("deadlock detected")
        wrapped = retry_on_deadlock(max_retries=2, delay=0.1, backoff=2.0)(self.calls)

        with pytest.raises(DeadlockError):
            wrapped()

        assert self.calls.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2]

    def test_other_operational_errors_not_retried(self):
        self.calls.side_effect = OperationalError("no such table: marketplace_gig")
        wrapped = retry_on_deadlock()(self.calls)

        with pytest.raises(TransactionError):
            wrapped()
        assert self.calls.call_count == 1


@pytest.mark.unit
class TestServiceErrorsUnit:
    def test_error_response_body_and_status(self):
        response = service_error_response(InvalidTransitionError("Cannot move an order from completed to pending"))

        assert response.status_code == 409
        assert response.data == {
            "detail": "Cannot move an order from completed to pending",
            "code": "invalid_transition",
        }

    def test_default_detail(self):
        error = PaymentInitiationError()
        assert error.status_code == 502
        assert error.detail == PaymentInitiationError.default_detail

    def test_log_performance_reraises(self):
        class Sample(BaseService):
            @BaseService.log_performance
            def fail(self):
                raise NotFoundError("Gig not found")

        with pytest.raises(NotFoundError):
            Sample().fail()


@pytest.mark.unit
class TestMaskValueUnit:
    def test_masks_long_values(self):
        assert mask_value("pi_3NabcdEFGH1234") == "pi_3Na...1234"

    def test_hides_short_values(self):
        assert mask_value("pi_123") == "***"

    def test_non_strings_pass_through(self):
        assert mask_value(None) is None


@pytest.mark.unit
class TestRetryWrapsRealFunctionUnit:
    @patch("utils.transaction_utils.time.sleep")
    def test_backoff_until_success(self, mock_sleep):
        outcomes = [OperationalError("database is locked"), OperationalError("deadlock detected"), 42]

        @retry_on_deadlock(max_retries=3, delay=0.05, backoff=3.0)
        def bump_counter():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert bump_counter() == 42
        assert outcomes == []
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.05, pytest.approx(0.15)]
        assert bump_counter.__name__ == "bump_counter"
