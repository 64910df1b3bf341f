"""
Integration tests for FormationEngine against the in-memory CouchDB cluster
"""
import json
import pytest
import httpx
from couch_cluster.formation_engine import FormationEngine, FormationLogger, ErrorHandler
from couch_cluster.models import FormationConfig, FormationPhase, ClusterState
from couch_cluster.node_client import NodeControlClient


@pytest.fixture
def config(topology, credentials, tmp_path):
    return FormationConfig(topology=topology, credentials=credentials, log_dir=str(tmp_path / "logs"))


@pytest.fixture
def engine(fake_cluster, tmp_path):
    clients = []

    def client_factory(config):
        node_client = NodeControlClient(transport=httpx.MockTransport(fake_cluster.handler))
        clients.append(node_client)
        return node_client

    engine = FormationEngine(
        client_factory=client_factory,
        formation_logger=FormationLogger(str(tmp_path / "logs")),
        error_handler=ErrorHandler()
    )
    engine.created_clients = clients
    return engine


def test_form_cluster_success(engine, fake_cluster, config):
    result = engine.form_cluster(config)

    assert result.success
    assert result.run_id.startswith("formation-")
    assert result.coordinator == "a:5984"
    assert result.node_count == 3
    assert result.error_message is None
    assert len(result.steps_for(FormationPhase.ADD_NODE)) == 2
    assert len(result.steps_for(FormationPhase.FINISH)) == 1
    assert all(node.state == 'cluster_finished' for node in fake_cluster.nodes.values())


def test_form_cluster_writes_run_log(engine, config):
    result = engine.form_cluster(config)

    log_path = engine.formation_logger.get_log_path(result.run_id)
    data = json.loads(log_path.read_text())
    assert data['status'] == 'passed'
    assert len(data['steps']) == len(result.steps)
    assert "secret" not in log_path.read_text()


def test_form_cluster_failure_reported(engine, fake_cluster, config):
    fake_cluster.set_state('b:5984', 'cluster_finished')

    result = engine.form_cluster(config)

    assert not result.success
    assert result.error_category == 'state_mismatch'
    assert "b:5984 is already clustered" in result.error_message
    assert fake_cluster.post_calls() == []
    assert engine.error_handler.get_error_summary()['total_errors'] == 1


def test_form_cluster_network_failure(engine, fake_cluster, config):
    fake_cluster.raise_error('a:5984', 'finish_cluster', httpx.ConnectError("refused"))

    result = engine.form_cluster(config)

    assert not result.success
    assert result.error_category == 'network_error'
    failed = [step for step in result.steps if not step.success]
    assert failed[-1].phase == FormationPhase.FINISH


def test_client_is_closed(engine, config):
    engine.form_cluster(config)
    engine.inspect_cluster(config)

    assert len(engine.created_clients) == 2
    assert all(client.http.is_closed for client in engine.created_clients)


def test_parallel_workers(engine, fake_cluster, config):
    config.max_workers = 3

    result = engine.form_cluster(config)

    assert result.success
    assert len(result.steps_for(FormationPhase.PREFLIGHT)) == 3


def test_inspect_cluster(engine, config):
    report = engine.inspect_cluster(config)
    assert not report.formed
    assert all(node.state == ClusterState.NOT_ENABLED for node in report.nodes)

    engine.form_cluster(config)

    assert engine.inspect_cluster(config).formed


def test_unexpected_error_fails_run(fake_cluster, config, tmp_path):
    """A bug below the client still produces a failed result and a completed run log"""
    def handler(request):
        raise RuntimeError("bug")

    error_handler = ErrorHandler()
    engine = FormationEngine(
        client_factory=lambda config: NodeControlClient(transport=httpx.MockTransport(handler)),
        formation_logger=FormationLogger(str(tmp_path / "logs")),
        error_handler=error_handler
    )

    result = engine.form_cluster(config)

    assert not result.success
    assert result.error_category == 'unexpected'
    assert "bug" in result.error_message
    data = json.loads(engine.formation_logger.get_log_path(result.run_id).read_text())
    assert data['status'] == 'failed'
    assert error_handler.get_error_summary()['by_severity'] == {'fatal': 1}


def test_generate_report_after_run(engine, config):
    result = engine.form_cluster(config)

    report = engine.generate_report([result])

    assert f"Run: {result.run_id}" in report
    assert "[PASS] finish" in report
    assert "Total: 1, Passed: 1, Failed: 0" in report


def test_generate_report_uses_per_run_logger(fake_cluster, config):
    engine = FormationEngine(
        client_factory=lambda config: NodeControlClient(transport=httpx.MockTransport(fake_cluster.handler)),
        error_handler=ErrorHandler()
    )

    with pytest.raises(RuntimeError):
        engine.generate_report([])

    result = engine.form_cluster(config)

    assert engine.last_run_logger.get_log_path(result.run_id).exists()
    assert "Status: PASSED" in engine.generate_report([result])
