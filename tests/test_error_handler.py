"""
Tests for error categorization and reporting
"""
import pytest
from couch_cluster.formation_engine.error_handler import (
    ErrorHandler, ErrorContext, ErrorCategory, ErrorSeverity, categorize, get_error_handler
)
from couch_cluster.errors import (
    ConfigError, NetworkError, ProtocolRejectionError, EnableClusterError, AddNodeError,
    FinishClusterError, StateMismatchError, AlreadyClusteredError, VerificationError
)


class TestErrorContext:
    """Test ErrorContext dataclass"""

    def test_create_error_context(self):
        context = ErrorContext(
            category=ErrorCategory.NETWORK_ERROR,
            severity=ErrorSeverity.HIGH,
            message="Test error",
            node_id="a:5984"
        )

        assert context.category == ErrorCategory.NETWORK_ERROR
        assert context.severity == ErrorSeverity.HIGH
        assert context.message == "Test error"
        assert context.node_id == "a:5984"
        assert context.metadata is None


class TestCategorize:
    """Test exception to category mapping"""

    @pytest.mark.parametrize("exception,category", [
        (ConfigError("no nodes"), ErrorCategory.CONFIGURATION),
        (NetworkError("a:5984", "timed out"), ErrorCategory.NETWORK_ERROR),
        (ProtocolRejectionError("a:5984", "query_membership", 500), ErrorCategory.PROTOCOL_REJECTION),
        (EnableClusterError("a:5984", 500), ErrorCategory.PROTOCOL_REJECTION),
        (AddNodeError("b:5984", "add_node", 409), ErrorCategory.PROTOCOL_REJECTION),
        (FinishClusterError(500), ErrorCategory.PROTOCOL_REJECTION),
        (StateMismatchError("a:5984", "cluster_enabled", "cluster_disabled"), ErrorCategory.STATE_MISMATCH),
        (AlreadyClusteredError("a:5984", "cluster_finished"), ErrorCategory.STATE_MISMATCH),
        (VerificationError("membership_count", 3, 2), ErrorCategory.VERIFICATION),
        (RuntimeError("boom"), ErrorCategory.UNEXPECTED),
    ])
    def test_categories(self, exception, category):
        assert categorize(exception) == category


class TestErrorHandler:
    """Test ErrorHandler functionality"""

    def setup_method(self):
        self.handler = ErrorHandler()

    def test_context_from_add_node_error(self):
        error = AddNodeError("c:5984", "add_node", 500, "node down")

        context = self.handler.context_from_exception(error)

        assert context.category == ErrorCategory.PROTOCOL_REJECTION
        assert context.severity == ErrorSeverity.HIGH
        assert context.phase == "add_node"
        assert context.node_id == "c:5984"
        assert context.metadata == {'status': 500, 'reason': 'node down'}

    def test_context_from_state_mismatch(self):
        error = AlreadyClusteredError("b:5984", "cluster_enabled")

        context = self.handler.context_from_exception(error, phase="preflight")

        assert context.phase == "preflight"
        assert context.metadata == {'expected': 'not_enabled', 'actual': 'cluster_enabled'}

    def test_config_errors_are_fatal(self):
        context = self.handler.context_from_exception(ConfigError("Missing list of nodes"))
        assert context.severity == ErrorSeverity.FATAL
        assert context.node_id is None

    def test_handle_error_records_history(self):
        context = self.handler.context_from_exception(NetworkError("a:5984", "refused"))

        self.handler.handle_error(context)

        assert self.handler.error_history == [context]

    def test_unexpected_errors_are_fatal(self, caplog):
        context = self.handler.context_from_exception(RuntimeError("bug"))

        self.handler.handle_error(context)

        assert context.category == ErrorCategory.UNEXPECTED
        assert context.severity == ErrorSeverity.FATAL
        assert "[unexpected] bug" in caplog.text

    def test_severities(self):
        assert {severity.value for severity in ErrorSeverity} == {"high", "fatal"}

    def test_handle_error_logs(self, caplog):
        context = self.handler.context_from_exception(FinishClusterError(500, "cannot finish", node="a:5984"))

        self.handler.handle_error(context)

        assert "[finish_cluster] [protocol_rejection]" in caplog.text

    def test_error_summary(self):
        self.handler.handle_error(self.handler.context_from_exception(NetworkError("a:5984", "refused")))
        self.handler.handle_error(self.handler.context_from_exception(NetworkError("b:5984", "refused")))
        self.handler.handle_error(self.handler.context_from_exception(ConfigError("bad")))

        summary = self.handler.get_error_summary()

        assert summary['total_errors'] == 3
        assert summary['by_category'] == {'network_error': 2, 'configuration': 1}
        assert summary['by_severity'] == {'high': 2, 'fatal': 1}
        assert summary['recent_errors'][0]['node'] == "a:5984"

    def test_clear_history(self):
        self.handler.handle_error(self.handler.context_from_exception(ConfigError("bad")))
        self.handler.clear_history()
        assert self.handler.get_error_summary()['total_errors'] == 0


def test_global_error_handler():
    assert get_error_handler() is get_error_handler()
