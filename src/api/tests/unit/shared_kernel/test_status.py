"""Unit tests for the Status result wrapper."""

from shared_kernel.status import ErrorCode, Status, StatusError, first_failure


class TestStatus:
    """Tests for Status construction and accessors."""

    def test_ok_carries_result_and_message(self):
        """A successful status exposes its payload and message."""
        status = Status.ok(42, message="Done")

        assert status.is_valid
        assert not status.has_errors
        assert status.result == 42
        assert status.message == "Done"
        assert status.get_all_errors() == ""
        assert status.first_error_code is None

    def test_default_success_message(self):
        """Successful statuses default to "Success"."""
        assert Status.ok().message == "Success"

    def test_fail_hides_result(self):
        """A failed status never exposes a payload."""
        status = Status.fail("Bad name").set_result(42)

        assert status.has_errors
        assert status.result is None
        assert status.first_error_code == ErrorCode.VALIDATION
        assert status.message == "Failed with 1 error"

    def test_errors_keep_order(self):
        """Errors are reported in the order they were added."""
        status = Status()
        status.add_error("first").add_error("second", ErrorCode.NOT_FOUND)

        assert status.error_messages == ["first", "second"]
        assert status.errors[1] == StatusError("second", ErrorCode.NOT_FOUND)
        assert status.get_all_errors("; ") == "first; second"
        assert status.message == "Failed with 2 errors"

    def test_message_can_be_replaced(self):
        """The success message can be set after construction."""
        status = Status.ok()
        status.message = "Moved"

        assert status.message == "Moved"

    def test_combine_appends_errors(self):
        """Combining copies the other status's errors."""
        status = Status.ok("kept")
        other = Status.fail("broken", ErrorCode.STORE_OPERATION)

        status.combine(other)

        assert status.error_messages == ["broken"]
        assert status.first_error_code == ErrorCode.STORE_OPERATION


class TestFirstFailure:
    """Tests for first_failure()."""

    def test_returns_first_failed_status(self):
        """The earliest failed status wins."""
        failed = Status.fail("one")

        assert first_failure(Status.ok(), failed, Status.fail("two")) is failed

    def test_returns_none_when_all_valid(self):
        """No failure yields None."""
        assert first_failure(Status.ok(), Status.ok()) is None
