"""
Formation Logger - Per-run step logging and reporting
"""
import json
import time
import logging
import threading
from pathlib import Path
from typing import List, Dict, Any, Optional
from datetime import datetime
from ..interfaces import ILogger
from ..models import FormationConfig, FormationResult, StepResult
from ..utils.topology_parser import format_topology

logger = logging.getLogger(__name__)


class FormationLogger(ILogger):
    """
    Thread-safe formation run logging system.
    Records every node/phase step of a run and writes the run log to disk as JSON.
    """

    def __init__(self, log_dir: str = "/tmp/couch-cluster/logs"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.current_run_id: Optional[str] = None
        self.run_logs: Dict[str, Dict[str, Any]] = {}
        self.run_start_times: Dict[str, float] = {}
        self._lock = threading.Lock()

    def log_run_start(self, run_id: str, config: FormationConfig) -> None:
        """Log the start of a formation run. Credentials are never written."""
        with self._lock:
            self.current_run_id = run_id
            self.run_start_times[run_id] = time.time()

            self.run_logs[run_id] = {
                'run_id': run_id,
                'start_time': self.run_start_times[run_id],
                'start_timestamp': datetime.now().isoformat(),
                'topology': format_topology(config.topology),
                'coordinator': config.topology.coordinator.address,
                'node_count': len(config.topology),
                'username': config.credentials.username,
                'bind_address': config.bind_address,
                'steps': [],
                'status': 'running'
            }

            logger.info(
                f"Run {run_id}: forming a {len(config.topology)}-node cluster "
                f"with coordinator {config.topology.coordinator.address}"
            )
            self._write_log_to_disk(run_id)

    def log_step(self, step: StepResult) -> None:
        """Log one node/phase call with its outcome"""
        with self._lock:
            if not self.current_run_id:
                logger.warning("No active run to log step to")
                return

            self.run_logs[self.current_run_id]['steps'].append(self._step_to_dict(step))

            outcome = "PASS" if step.success else "FAIL"
            message = f"[{step.phase.value}] {step.node}: {outcome}"
            if step.reason:
                message += f" ({step.reason})"

            if step.success:
                logger.info(message)
            else:
                logger.error(message)

            self._write_log_to_disk(self.current_run_id)

    def log_run_completion(self, result: FormationResult) -> None:
        """Log completion of a formation run"""
        with self._lock:
            run_log = self.run_logs.get(result.run_id)
            if run_log is None:
                logger.warning(f"No log for run {result.run_id}")
                return

            run_log.update({
                'end_time': result.end_time,
                'end_timestamp': datetime.fromtimestamp(result.end_time).isoformat(),
                'duration': result.duration,
                'status': 'passed' if result.success else 'failed',
                'error_message': result.error_message,
                'error_category': result.error_category
            })

            if result.success:
                logger.info(f"Run {result.run_id} PASSED in {result.duration:.2f}s")
            else:
                logger.error(f"Run {result.run_id} FAILED in {result.duration:.2f}s: {result.error_message}")

            self._write_log_to_disk(result.run_id)

            if self.current_run_id == result.run_id:
                self.current_run_id = None

    def get_run_log(self, run_id: str) -> Optional[Dict[str, Any]]:
        return self.run_logs.get(run_id)

    def get_log_path(self, run_id: str) -> Path:
        return self.log_dir / f"{run_id}.json"

    def generate_report(self, results: List[FormationResult]) -> str:
        """Generate a human-readable summary of formation runs"""
        lines = ["=" * 60, "Cluster Formation Report", "=" * 60]

        for result in results:
            status = "PASSED" if result.success else "FAILED"
            lines.append(f"Run: {result.run_id}")
            lines.append(f"Status: {status}")
            lines.append(f"Coordinator: {result.coordinator}")
            lines.append(f"Nodes: {result.node_count}")
            lines.append(f"Duration: {result.duration:.2f}s")

            for step in result.steps:
                outcome = "[PASS]" if step.success else "[FAIL]"
                line = f"  {outcome} {step.phase.value:<13} {step.node}"
                if step.status is not None:
                    line += f" status={step.status}"
                if step.reason:
                    line += f" reason={step.reason}"
                lines.append(line)

            if result.error_message:
                lines.append(f"Error: {result.error_message}")
            lines.append("-" * 60)

        passed = sum(1 for r in results if r.success)
        lines.append(f"Total: {len(results)}, Passed: {passed}, Failed: {len(results) - passed}")
        return "\n".join(lines)

    def _step_to_dict(self, step: StepResult) -> Dict[str, Any]:
        return {
            'phase': step.phase.value,
            'node': step.node,
            'success': step.success,
            'status': step.status,
            'reason': step.reason,
            'timestamp': step.timestamp,
            'datetime': datetime.fromtimestamp(step.timestamp).isoformat() if step.timestamp else None
        }

    def _write_log_to_disk(self, run_id: str) -> None:
        """Write the run log as JSON; called with the lock held"""
        try:
            with open(self.get_log_path(run_id), 'w') as f:
                json.dump(self.run_logs[run_id], f, indent=2, default=str)
        except OSError as e:
            logger.warning(f"Failed to write run log for {run_id}: {e}")
