#!/usr/bin/env python3
"""
Command-line interface for the CouchDB cluster setup tool
Provides commands for forming a cluster, inspecting cluster state, and checking configuration.
"""
import sys
import argparse
import json
import yaml
import traceback
import logging
from pathlib import Path
from typing import Dict, Any
from datetime import datetime
from .main import CouchClusterSetup
from .config import build_formation_config, ENV_NODES, ENV_USER, ENV_PASSWORD
from .errors import ConfigError
from .models import FormationConfig, FormationResult, FormationPhase, ClusterReport


class ClusterSetupCLI:
    """Command-line interface for the CouchDB cluster setup tool"""

    def __init__(self):
        self.setup = CouchClusterSetup()

    def _build_config(self, args) -> FormationConfig:
        return build_formation_config(
            nodes=args.nodes,
            username=args.user,
            password=args.password,
            config_file=args.config,
            bind_address=args.bind_address,
            timeout=args.timeout,
            workers=args.workers,
            scheme=args.scheme,
            log_dir=args.log_dir
        )

    def run_form(self, args) -> int:
        """Form a cluster from the configured nodes"""
        self._print_header("Cluster Formation")

        try:
            config = self._build_config(args)
        except ConfigError as e:
            print(f"Error: {e}")
            return 1

        print(f"Coordinator: {config.topology.coordinator.address}")
        print(f"Nodes: {len(config.topology)}")
        print()

        result = self.setup.form_cluster(config)

        if args.verbose:
            self._print_detailed_result(result)
        else:
            self._print_summary_result(result)

        if args.report:
            print()
            print(self.setup.formation_report())

        if args.output:
            self._save_results(result, args.output, args.format)

        return 0 if result.success else 1

    def run_status(self, args) -> int:
        """Display each node's cluster state without changing anything"""
        self._print_header("Cluster Status")

        try:
            config = self._build_config(args)
        except ConfigError as e:
            print(f"Error: {e}")
            return 1

        report = self.setup.cluster_status(config)
        self._print_cluster_report(report)

        if args.output:
            self._write_output(self._report_to_dict(report), args.output, args.format)

        return 0 if report.formed else 1

    def run_check(self, args) -> int:
        """Validate configuration and show the parsed topology"""
        self._print_header("Configuration Check")

        try:
            config = self._build_config(args)
        except ConfigError as e:
            print(f"Error: {e}")
            print(f"\nSet the nodes with --nodes, a --config file, or {ENV_NODES}")
            print(f"Set credentials with --user/--password, a --config file, or {ENV_USER}/{ENV_PASSWORD}")
            return 1

        print(f"Admin user: {config.credentials.username}")
        print(f"Bind address: {config.bind_address}")
        print(f"Request timeout: {config.request_timeout:.1f}s")
        print(f"Workers: {config.max_workers}")
        print("\nTopology:")
        for i, node in enumerate(config.topology):
            role = "coordinator" if i == 0 else "peer"
            line = f"  {i + 1}. {node.address} ({role})"
            if node.internal_host or node.internal_port:
                line += f", internal {node.cluster_host}:{node.cluster_port}"
            print(line)

        print("\nConfiguration is valid!")
        return 0

    def _print_header(self, title: str):
        """Print formatted header"""
        print()
        print("=" * 80)
        print(title)
        print("=" * 80)
        print()

    def _print_summary_result(self, result: FormationResult):
        """Print per-phase summary of a formation run"""
        status = "PASSED" if result.success else "FAILED"

        print(f"\nRun: {result.run_id}")
        print(f"Status: {status}")
        print(f"Duration: {result.duration:.2f}s")

        for phase in FormationPhase:
            phase_steps = result.steps_for(phase)
            if not phase_steps:
                continue
            phase_ok = all(step.success for step in phase_steps)
            print(f"  {'[PASS]' if phase_ok else '[FAIL]'} {phase.value} ({len(phase_steps)} steps)")

        if result.error_message:
            print(f"Error: {result.error_message}")

    def _print_detailed_result(self, result: FormationResult):
        """Print every step when --verbose flag is specified"""
        self._print_summary_result(result)

        if result.steps:
            print("\nSteps:")
            for step in result.steps:
                outcome = "[PASS]" if step.success else "[FAIL]"
                line = f"  {outcome} {step.phase.value} on {step.node}"
                if step.status is not None:
                    line += f" (status {step.status})"
                print(line)
                if step.reason:
                    print(f"    Reason: {step.reason}")

    def _print_cluster_report(self, report: ClusterReport):
        for node_report in report.nodes:
            if node_report.error:
                print(f"  {node_report.node}: unreachable ({node_report.error})")
            else:
                print(f"  {node_report.node}: {node_report.raw_state}")

        if report.membership is not None:
            print(f"\nMembership: {len(report.membership.cluster_nodes)} cluster nodes, "
                  f"{len(report.membership.all_nodes)} known nodes, {report.node_count} expected")
        elif report.membership_error:
            print(f"\nMembership: unavailable ({report.membership_error})")

        if report.formed:
            print("\nCluster is already formed")
        else:
            print("\nCluster is not formed")

    def _save_results(self, result: FormationResult, output_path: str, format: str):
        """Save formation result to file"""
        data = {
            'timestamp': datetime.now().isoformat(),
            'result': self._result_to_dict(result)
        }
        self._write_output(data, output_path, format)

    def _write_output(self, data: Dict[str, Any], output_path: str, format: str):
        try:
            output = Path(output_path)
            output.parent.mkdir(parents=True, exist_ok=True)

            with open(output, 'w') as f:
                if format == 'json':
                    json.dump(data, f, indent=2)
                elif format == 'yaml':
                    yaml.dump(data, f, default_flow_style=False)

            print(f"\nResults saved to {output_path}")

        except OSError as e:
            print(f"\nFailed to save results: {e}")

    def _result_to_dict(self, result: FormationResult) -> Dict[str, Any]:
        """Convert FormationResult to dictionary"""
        return {
            'run_id': result.run_id,
            'success': result.success,
            'duration': result.duration,
            'coordinator': result.coordinator,
            'node_count': result.node_count,
            'error_message': result.error_message,
            'error_category': result.error_category,
            'steps': [
                {
                    'phase': step.phase.value,
                    'node': step.node,
                    'success': step.success,
                    'status': step.status,
                    'reason': step.reason
                }
                for step in result.steps
            ]
        }

    def _report_to_dict(self, report: ClusterReport) -> Dict[str, Any]:
        """Convert ClusterReport to dictionary"""
        data = {
            'formed': report.formed,
            'node_count': report.node_count,
            'nodes': [
                {
                    'node': node_report.node,
                    'state': node_report.state.value,
                    'raw_state': node_report.raw_state,
                    'error': node_report.error
                }
                for node_report in report.nodes
            ],
            'membership': None,
            'membership_error': report.membership_error
        }
        if report.membership is not None:
            data['membership'] = {
                'all_nodes': report.membership.all_nodes,
                'cluster_nodes': report.membership.cluster_nodes
            }
        return data


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        '--nodes',
        type=str,
        help=f'Comma-separated host[:port[:internal_host[:internal_port]]] list (default: ${ENV_NODES})'
    )
    parser.add_argument(
        '--user',
        type=str,
        help=f'Admin username shared by all nodes (default: ${ENV_USER})'
    )
    parser.add_argument(
        '--password',
        type=str,
        help=f'Admin password shared by all nodes (default: ${ENV_PASSWORD})'
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Path to configuration file (YAML or JSON)'
    )
    parser.add_argument(
        '--bind-address',
        type=str,
        help='bind_address sent with enable_cluster (default: 0.0.0.0)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Per-request timeout in seconds (default: 30)'
    )
    parser.add_argument(
        '--workers',
        type=int,
        help='Concurrent per-node calls for pre-flight, enable and verify (default: 1)'
    )
    parser.add_argument(
        '--scheme',
        choices=['http', 'https'],
        help='Scheme of the admin endpoints (default: http)'
    )
    parser.add_argument(
        '--log-dir',
        type=str,
        help='Directory for JSON run logs (default: /tmp/couch-cluster/logs)'
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Path to save results'
    )
    parser.add_argument(
        '--format',
        choices=['json', 'yaml'],
        default='json',
        help='Output format for results (default: json)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog='couch-cluster',
        description='Form a CouchDB cluster from independently running nodes',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Form a three node cluster, first node is the coordinator
  couch-cluster form --nodes 10.0.1.10,10.0.2.10,10.0.3.10 --user admin --password secret

  # Same, reading COUCHDB_CLUSTER_NODES, COUCHDB_USER and COUCHDB_PASSWORD
  couch-cluster form

  # Node reachable externally on one address, internally on another
  couch-cluster form --nodes db1.example.com:5984:couchdb-1:5984,db2.example.com:5984:couchdb-2:5984

  # Form a cluster and print the step-by-step formation report
  couch-cluster form --config cluster.yaml --report

  # Show cluster state without changing anything
  couch-cluster status --config cluster.yaml

  # Validate configuration only
  couch-cluster check --config cluster.yaml
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version='couch-cluster 0.1.0'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    form_parser = subparsers.add_parser(
        'form',
        help='Form a cluster from all configured nodes'
    )
    _add_common_arguments(form_parser)
    form_parser.add_argument(
        '--report',
        action='store_true',
        help='Print the formation report after the run'
    )

    status_parser = subparsers.add_parser(
        'status',
        help='Show cluster state of all nodes without changing anything'
    )
    _add_common_arguments(status_parser)

    check_parser = subparsers.add_parser(
        'check',
        help='Validate configuration without contacting any node'
    )
    _add_common_arguments(check_parser)

    return parser


def main(argv=None):
    """Main entry point for CLI"""

    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s',
        handlers=[logging.StreamHandler()],
        force=True
    )

    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        print("Error: No command specified\n")
        parser.print_help()
        print("\nCommon commands:")
        print("  couch-cluster form --nodes a,b,c        # Form a cluster")
        print("  couch-cluster status --nodes a,b,c      # Show cluster state")
        print("  couch-cluster check --config file.yaml  # Validate configuration")
        return 1

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    cli = ClusterSetupCLI()

    try:
        if args.command == 'form':
            return cli.run_form(args)
        elif args.command == 'status':
            return cli.run_status(args)
        elif args.command == 'check':
            return cli.run_check(args)
    except KeyboardInterrupt:
        print("\n\nCluster setup was interrupted by user")
        return 130
    except Exception as e:
        print(f"\nUnexpected error: {e}")
        if args.verbose:
            traceback.print_exc()
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
