"""Unit tests for domain probes.

Tests that domain probes correctly capture domain events
following the Domain Oriented Observability pattern.
"""

from unittest.mock import MagicMock

import structlog

from infrastructure.observability import (
    DefaultConnectionProbe,
    DefaultStartupProbe,
    ObservationContext,
)
from tenancy.application.observability import DefaultTenantAdminServiceProbe
from tenancy.infrastructure.observability import (
    DefaultTenantChangeServiceProbe,
    DefaultTenantRepositoryProbe,
)


class TestConnectionProbe:
    """Tests for ConnectionProbe protocol and implementation."""

    def test_default_probe_creates_with_default_logger(self):
        """Default probe should work without explicit logger."""
        probe = DefaultConnectionProbe()
        assert probe._logger is not None

    def test_default_probe_accepts_custom_logger(self):
        """Default probe should accept a custom logger."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultConnectionProbe(logger=mock_logger)
        assert probe._logger is mock_logger

    def test_engine_created_logs_info(self):
        """engine_created should log with connection name and database."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultConnectionProbe(logger=mock_logger)

        probe.engine_created(connection_name="OtherConnection", database="other.db")

        mock_logger.info.assert_called_once_with(
            "database_engine_created",
            connection_name="OtherConnection",
            database="other.db",
        )

    def test_connection_failed_logs_error(self):
        """connection_failed should log error with connection name and error."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultConnectionProbe(logger=mock_logger)

        probe.connection_failed(
            connection_name="Broken", error=Exception("Connection refused")
        )

        mock_logger.error.assert_called_once_with(
            "database_connection_failed",
            connection_name="Broken",
            error="Connection refused",
        )

    def test_connection_unresolved_logs_warning(self):
        """connection_unresolved should log a warning."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultConnectionProbe(logger=mock_logger)

        probe.connection_unresolved(connection_name="MissingConnection")

        mock_logger.warning.assert_called_once_with(
            "database_connection_unresolved",
            connection_name="MissingConnection",
        )

    def test_with_context_adds_context_to_events(self):
        """A probe bound to a context logs the context fields."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        context = ObservationContext(request_id="req-123", user_id="admin")
        probe = DefaultConnectionProbe(logger=mock_logger).with_context(context)

        probe.engine_disposed(connection_name="OtherConnection")

        mock_logger.info.assert_called_once_with(
            "database_engine_disposed",
            connection_name="OtherConnection",
            request_id="req-123",
            user_id="admin",
        )


class TestStartupProbe:
    """Tests for StartupProbe implementation."""

    def test_application_started_logs_configuration(self):
        """application_started records tenant type and connections."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultStartupProbe(logger=mock_logger)

        probe.application_started(
            tenant_type="SINGLE_LEVEL|ADD_SHARDING",
            connection_names=["DefaultConnection", "OtherConnection"],
        )

        mock_logger.info.assert_called_once_with(
            "application_started",
            tenant_type="SINGLE_LEVEL|ADD_SHARDING",
            connection_names=["DefaultConnection", "OtherConnection"],
        )


class TestTenantRepositoryProbe:
    """Tests for TenantRepositoryProbe implementation."""

    def test_tenant_saved_logs_version(self):
        """tenant_saved records the stored version."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantRepositoryProbe(logger=mock_logger)

        probe.tenant_saved("tenant-123", 2)

        mock_logger.info.assert_called_once()
        call_args = mock_logger.info.call_args
        assert call_args[0][0] == "tenant_saved"
        assert call_args[1]["tenant_id"] == "tenant-123"
        assert call_args[1]["version"] == 2

    def test_version_conflict_logs_warning(self):
        """version_conflict records both versions."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantRepositoryProbe(logger=mock_logger)

        probe.version_conflict("tenant-123", 1, 2)

        mock_logger.warning.assert_called_once()
        call_args = mock_logger.warning.call_args
        assert call_args[1]["expected_version"] == 1
        assert call_args[1]["actual_version"] == 2


class TestTenantChangeServiceProbe:
    """Tests for TenantChangeServiceProbe implementation."""

    def test_move_staged_logs_info(self):
        """move_staged records both connections and the row count."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantChangeServiceProbe(logger=mock_logger)

        probe.move_staged("KEY.", "DefaultConnection", "OtherConnection", 3)

        mock_logger.info.assert_called_once_with(
            "tenant_move_staged",
            data_key="KEY.",
            source_connection="DefaultConnection",
            target_connection="OtherConnection",
            row_count=3,
        )

    def test_store_operation_failed_logs_error(self):
        """store_operation_failed records the failed action."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantChangeServiceProbe(logger=mock_logger)

        probe.store_operation_failed("copy", "OtherConnection", "disk full")

        mock_logger.error.assert_called_once_with(
            "tenant_store_operation_failed",
            operation="copy",
            connection_name="OtherConnection",
            error="disk full",
        )


class TestTenantAdminServiceProbe:
    """Tests for TenantAdminServiceProbe implementation."""

    def test_tenant_added_logs_info(self):
        """tenant_added records the tenant and its connection."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantAdminServiceProbe(logger=mock_logger)

        probe.tenant_added(
            tenant_id="tenant-123",
            full_name="Company | West",
            connection_name="DefaultConnection",
        )

        mock_logger.info.assert_called_once_with(
            "tenant_added",
            tenant_id="tenant-123",
            full_name="Company | West",
            connection_name="DefaultConnection",
        )

    def test_reconciliation_required_logs_error(self):
        """reconciliation_required is an error event naming both stores."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantAdminServiceProbe(logger=mock_logger)

        probe.reconciliation_required(
            tenant_id="tenant-123",
            source_connection="DefaultConnection",
            target_connection="OtherConnection",
            reason="connection lost",
        )

        mock_logger.error.assert_called_once()
        call_args = mock_logger.error.call_args
        assert call_args[0][0] == "tenant_reconciliation_required"
        assert call_args[1]["reason"] == "connection lost"

    def test_move_cancellation_deferred_logs_warning(self):
        """A deferred cancellation is a warning."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantAdminServiceProbe(logger=mock_logger)

        probe.move_cancellation_deferred(tenant_id="tenant-123")

        mock_logger.warning.assert_called_once_with(
            "tenant_move_cancellation_deferred", tenant_id="tenant-123"
        )

    def test_with_context_keeps_logger(self):
        """with_context returns a new probe sharing the logger."""
        mock_logger = MagicMock(spec=structlog.stdlib.BoundLogger)
        probe = DefaultTenantAdminServiceProbe(logger=mock_logger)

        bound = probe.with_context(ObservationContext(tenant_id="tenant-123"))
        bound.tenants_listed(count=3)

        assert bound is not probe
        mock_logger.debug.assert_called_once_with(
            "tenants_listed", count=3, tenant_id="tenant-123"
        )
