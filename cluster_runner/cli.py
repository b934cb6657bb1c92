#!/usr/bin/env python3
"""
Command-line interface for the Cluster Runner
Starts a cluster and keeps it running until the process is interrupted.
"""
import sys
import signal
import argparse
import logging
import traceback
from typing import List, Optional

from .configs import add_cluster_arguments, config_from_namespace
from .exceptions import ClusterRunnerError
from .main import ClusterRunner


class RunnerCLI:
    """Command-line interface for the Cluster Runner"""

    def __init__(self):
        self.runner: Optional[ClusterRunner] = None

    def run(self, args) -> int:
        """Build the cluster and block until it is closed"""
        values = vars(args).copy()
        verbose = values.pop('verbose', False)
        clean_on_exit = values.pop('clean', False)

        try:
            config = config_from_namespace(values)
        except ClusterRunnerError as e:
            print(f"Error: {e}")
            print("\nExample: search-cluster-runner --num-of-node 3 --base-path /tmp/es-cluster")
            return 1

        self.runner = ClusterRunner(config)
        self._install_signal_handlers()

        try:
            self.runner.build()
        except ClusterRunnerError as e:
            print(f"Error: Failed to start cluster: {e}")
            if verbose:
                traceback.print_exc()
            self.runner.close()
            return 1

        self.runner.register_shutdown_hook()
        self.runner.wait_for_close()

        if clean_on_exit:
            self.runner.clean()
        return 0

    def _install_signal_handlers(self) -> None:
        def handle_signal(signum, frame):
            print(f"\nReceived signal {signum}, closing cluster")
            self.runner.close()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog='search-cluster-runner',
        description='Run a local multi-node search engine cluster for integration tests',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  search-cluster-runner
  search-cluster-runner --num-of-node 5 --base-path /tmp/es-cluster
  search-cluster-runner --config cluster.yaml --print-on-failure
        """
    )
    add_cluster_arguments(parser)
    parser.add_argument(
        '--clean',
        action='store_true',
        help='Delete the base path after the cluster is closed'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI"""

    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s',
        handlers=[logging.StreamHandler()]
    )

    parser = create_parser()
    args = parser.parse_args(argv)

    cli = RunnerCLI()

    try:
        return cli.run(args)
    except KeyboardInterrupt:
        print("\n\nCluster runner was interrupted by user")
        if cli.runner is not None:
            cli.runner.close()
        return 130
    except Exception as e:
        print(f"\nUnexpected error: {e}")
        if getattr(args, 'verbose', False):
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
