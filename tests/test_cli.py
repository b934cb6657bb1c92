"""
Tests for CLI functionality
"""
import signal
import yaml
from unittest.mock import Mock, patch

from cluster_runner.cli import RunnerCLI, create_parser, main
from cluster_runner.exceptions import WorkspaceError


class TestArgumentParser:
    """Test argument parser creation and parsing"""

    def test_parse_flags(self):
        parser = create_parser()
        args = parser.parse_args(['--num-of-node', '2', '--cluster-name', 'cli', '--print-on-failure'])

        assert args.num_of_node == 2
        assert args.cluster_name == 'cli'
        assert args.print_on_failure is True
        assert args.clean is False
        assert args.verbose is False

    def test_unset_flags_absent(self):
        args = create_parser().parse_args([])

        assert not hasattr(args, 'num_of_node')
        assert not hasattr(args, 'base_path')


class TestRunnerCLI:
    """Test RunnerCLI.run"""

    def test_run_builds_and_waits(self):
        runner = Mock()
        args = create_parser().parse_args(['--num-of-node', '1', '--clean'])

        with patch('cluster_runner.cli.ClusterRunner', return_value=runner) as runner_cls, \
             patch('signal.signal') as install:
            result = RunnerCLI().run(args)

        assert result == 0
        config = runner_cls.call_args[0][0]
        assert config.num_of_node == 1
        runner.build.assert_called_once()
        runner.register_shutdown_hook.assert_called_once()
        runner.wait_for_close.assert_called_once()
        runner.clean.assert_called_once()
        installed = {call[0][0] for call in install.call_args_list}
        assert installed == {signal.SIGINT, signal.SIGTERM}

    def test_signal_handler_closes(self):
        runner = Mock()
        args = create_parser().parse_args([])
        handlers = {}

        def capture(signum, handler):
            handlers[signum] = handler

        with patch('cluster_runner.cli.ClusterRunner', return_value=runner), \
             patch('signal.signal', side_effect=capture):
            RunnerCLI().run(args)

        handlers[signal.SIGTERM](signal.SIGTERM, None)
        runner.close.assert_called_once()

    def test_invalid_config_returns_error(self, capsys):
        args = create_parser().parse_args(['--num-of-node', '-1'])

        result = RunnerCLI().run(args)

        assert result == 1
        assert "num_of_node" in capsys.readouterr().out

    def test_build_failure_returns_error(self):
        runner = Mock()
        runner.build.side_effect = WorkspaceError("Failed to create /readonly")
        args = create_parser().parse_args([])

        with patch('cluster_runner.cli.ClusterRunner', return_value=runner), \
             patch('signal.signal'):
            result = RunnerCLI().run(args)

        assert result == 1
        runner.close.assert_called_once()
        runner.wait_for_close.assert_not_called()

    def test_config_file(self, tmp_path):
        config_file = tmp_path / "cluster.yaml"
        with open(config_file, 'w') as f:
            yaml.dump({'num_of_node': 4, 'cluster_name': 'file'}, f)
        args = create_parser().parse_args(['--config', str(config_file)])

        with patch('cluster_runner.cli.ClusterRunner') as runner_cls, \
             patch('signal.signal'):
            RunnerCLI().run(args)

        config = runner_cls.call_args[0][0]
        assert config.num_of_node == 4
        assert config.cluster_name == 'file'


class TestMain:

    def test_main_returns_run_result(self):
        with patch.object(RunnerCLI, 'run', return_value=0) as run:
            assert main(['--num-of-node', '1']) == 0
        run.assert_called_once()

    def test_main_keyboard_interrupt(self):
        with patch.object(RunnerCLI, 'run', side_effect=KeyboardInterrupt()):
            assert main([]) == 130

    def test_main_unexpected_error(self, capsys):
        with patch.object(RunnerCLI, 'run', side_effect=RuntimeError("boom")):
            assert main([]) == 1
        assert "boom" in capsys.readouterr().out
