"""
部署服务测试：步骤顺序、致命错误与尽力而为步骤的处理
"""

from collections import Counter
from unittest.mock import patch, MagicMock

import pytest

from remarkable_deploy.config_manager import ConfigManager, DeployConfig
from remarkable_deploy.deploy_service import DeployService
from remarkable_deploy.exceptions import (
    BuildError,
    ConnectionFailedError,
    RemoteRunError,
    TransferError,
)
from tests.conftest import make_result

RUN_CMD = 'RUST_BACKTRACE=1 RUST_LOG=debug ./flashcards'


class FakeDevice:
    """记录发往设备的操作，默认模拟"没有旧进程"的设备"""

    def __init__(self, kill_exit=1, service_exit=0, run_exit=0, put_ok=True, reachable=True):
        self.events = []
        self.kill_exit = kill_exit
        self.service_exit = service_exit
        self.run_exit = run_exit
        self.put_ok = put_ok
        self.reachable = reachable

        self.ssh = MagicMock()
        self.ssh.destination = 'root@10.11.99.1'
        self.ssh.port = 22
        self.ssh.run.side_effect = self._run
        self.ssh.put.side_effect = self._put
        self.ssh.connect.side_effect = lambda: self.reachable

    def _run(self, command, hide=False, pty=False):
        self.events.append(('fg' if pty else 'ssh', command))
        if not self.reachable:
            return None
        if command.startswith('killall'):
            return make_result(exited=self.kill_exit)
        if command.startswith('systemctl'):
            return make_result(exited=self.service_exit)
        return make_result(exited=self.run_exit)

    def _put(self, local_path, remote_path, progress_callback=None):
        self.events.append(('put', remote_path))
        if progress_callback:
            progress_callback(remote_path, 2048, 2048)
        return self.put_ok


@pytest.fixture
def local():
    executor = MagicMock()
    executor.execute_command.return_value = 0
    return executor


def make_service(config, device, local):
    return DeployService(config, ssh_client=device.ssh, local_command_executor=local)


class TestDeploy:

    def test_deploy_sequence(self, config, artifact, local):
        device = FakeDevice()

        assert make_service(config, device, local).deploy() == 0

        assert device.events == [
            ('ssh', 'killall -q -9 flashcards'),
            ('ssh', 'systemctl stop xochitl'),
            ('put', 'flashcards'),
            ('fg', RUN_CMD),
        ]
        local.execute_command.assert_not_called()

    def test_no_prior_instance_is_not_an_error(self, config, artifact, local):
        # killall 返回 1：没有旧进程
        device = FakeDevice(kill_exit=1)

        assert make_service(config, device, local).deploy() == 0

    def test_prior_instance_is_killed_before_transfer(self, config, artifact, local):
        device = FakeDevice(kill_exit=0)

        make_service(config, device, local).deploy()

        kinds = [kind for kind, _ in device.events]
        assert kinds.index('ssh') < kinds.index('put') < kinds.index('fg')

    def test_unexpected_cleanup_failure_does_not_abort(self, config, artifact, local):
        device = FakeDevice(kill_exit=2, service_exit=5)

        assert make_service(config, device, local).deploy() == 0
        assert ('fg', RUN_CMD) in device.events

    def test_transfer_failure_is_fatal(self, config, artifact, local):
        device = FakeDevice(put_ok=False)

        with pytest.raises(TransferError):
            make_service(config, device, local).deploy()

        assert not any(kind == 'fg' for kind, _ in device.events)

    def test_missing_artifact_fails_transfer(self, config, local):
        device = FakeDevice()

        with pytest.raises(TransferError):
            make_service(config, device, local).deploy()

        device.ssh.put.assert_not_called()

    def test_unreachable_device(self, config, artifact, local):
        device = FakeDevice(reachable=False)

        with pytest.raises(ConnectionFailedError) as excinfo:
            make_service(config, device, local).deploy()

        assert excinfo.value.exit_code == 255

    def test_remote_exit_status_is_propagated(self, config, artifact, local):
        device = FakeDevice(run_exit=3)

        with pytest.raises(RemoteRunError) as excinfo:
            make_service(config, device, local).deploy()

        assert excinfo.value.exit_code == 3

    def test_connection_closed_after_failure(self, config, artifact, local):
        device = FakeDevice(put_ok=False)

        with pytest.raises(TransferError):
            make_service(config, device, local).deploy()

        device.ssh.disconnect.assert_called_once()


class TestBuild:

    def test_build_invokes_cross_with_target(self, config, local):
        device = FakeDevice()

        assert make_service(config, device, local).build() == 0

        local.execute_command.assert_called_once()
        command = local.execute_command.call_args[0][0]
        assert command == ['cross', 'build', '--release', '--target=armv7-unknown-linux-musleabihf']

    def test_build_failure_stops_everything(self, config, artifact, local):
        local.execute_command.return_value = 101
        device = FakeDevice()

        with pytest.raises(BuildError) as excinfo:
            make_service(config, device, local).all()

        assert excinfo.value.exit_code == 101
        assert device.events == []

    def test_all_builds_then_deploys(self, config, artifact, local):
        device = FakeDevice()

        assert make_service(config, device, local).all() == 0

        local.execute_command.assert_called_once()
        assert device.events[-1] == ('fg', RUN_CMD)


class TestPushAndRun:

    def test_push_only_transfers(self, config, artifact, local):
        device = FakeDevice()

        assert make_service(config, device, local).push() == 0

        assert device.events == [('put', 'flashcards')]

    def test_run_does_not_transfer(self, config, artifact, local):
        device = FakeDevice()

        assert make_service(config, device, local).run() == 0

        assert device.events == [
            ('ssh', 'killall -q -9 flashcards'),
            ('ssh', 'systemctl stop xochitl'),
            ('fg', RUN_CMD),
        ]

    def test_push_then_run_equals_deploy(self, config, artifact, local):
        split = FakeDevice()
        make_service(config, split, local).push()
        make_service(config, split, local).run()

        single = FakeDevice()
        make_service(config, single, local).deploy()

        assert Counter(split.events) == Counter(single.events)


class TestXochitl:

    @pytest.mark.parametrize('operation', ['start_xochitl', 'stop_xochitl'])
    def test_always_succeeds(self, config, local, operation):
        device = FakeDevice(reachable=False)

        assert getattr(make_service(config, device, local), operation)() == 0

    def test_stop_xochitl_kills_deployed_binary(self, config, local):
        device = FakeDevice(kill_exit=0, service_exit=1)

        make_service(config, device, local).stop_xochitl()

        assert device.events == [
            ('ssh', 'killall -q -9 flashcards'),
            ('ssh', 'systemctl stop xochitl'),
        ]

    def test_start_xochitl(self, config, local):
        device = FakeDevice()

        make_service(config, device, local).start_xochitl()

        assert device.events[-1] == ('ssh', 'systemctl start xochitl')


class TestConfigurationPropagation:

    @patch('remarkable_deploy.deploy_service.SSHClient')
    def test_device_ip_reaches_ssh_client(self, mock_ssh_client, tmp_path, monkeypatch):
        monkeypatch.setenv('DEVICE_IP', '192.168.1.42')
        config = ConfigManager(project_dir=str(tmp_path)).resolve()

        DeployService(config)

        mock_ssh_client.assert_called_once_with(
            '192.168.1.42', 'root', 22, key_path=None, password=None
        )

    @patch('remarkable_deploy.deploy_service.SSHClient')
    def test_device_host_override_reaches_ssh_client(self, mock_ssh_client, tmp_path, monkeypatch):
        monkeypatch.setenv('DEVICE_HOST', 'admin@remarkable.local:2222')
        config = ConfigManager(project_dir=str(tmp_path)).resolve()

        DeployService(config)

        mock_ssh_client.assert_called_once_with(
            'remarkable.local', 'admin', 2222, key_path=None, password=None
        )

    @patch('remarkable_deploy.deploy_service.SSHClient')
    def test_ipv6_device_ip_reaches_ssh_client(self, mock_ssh_client, tmp_path, monkeypatch):
        monkeypatch.setenv('DEVICE_IP', 'fe80::1')
        config = ConfigManager(project_dir=str(tmp_path)).resolve()

        DeployService(config)

        mock_ssh_client.assert_called_once_with(
            'fe80::1', 'root', 22, key_path=None, password=None
        )

    def test_remote_dir_and_env(self, tmp_path, local):
        config = DeployConfig(
            project_dir=str(tmp_path),
            remote_dir='/home/root/apps/',
            remote_env={'RUST_LOG': 'info warn'},
        )
        service = DeployService(config, ssh_client=FakeDevice().ssh, local_command_executor=local)

        assert service.remote_path == '/home/root/apps/flashcards'
        assert service.run_command() == "RUST_LOG='info warn' /home/root/apps/flashcards"

    def test_run_command_without_env(self, tmp_path, local):
        config = DeployConfig(project_dir=str(tmp_path), remote_env={})
        service = DeployService(config, ssh_client=FakeDevice().ssh, local_command_executor=local)

        assert service.run_command() == './flashcards'

    def test_home_relative_remote_dir(self, tmp_path, artifact, local):
        config = DeployConfig(project_dir=str(tmp_path), remote_dir='~/apps', remote_env={})
        device = FakeDevice()
        service = DeployService(config, ssh_client=device.ssh, local_command_executor=local)

        assert service.deploy() == 0

        assert ('put', 'apps/flashcards') in device.events
        assert ('fg', 'apps/flashcards') in device.events


class TestPlan:

    def test_plan_lists_steps_without_running(self, config, local):
        device = FakeDevice()
        service = make_service(config, device, local)

        plan = service.plan('deploy')
        actions = [action for _, action in plan]

        assert len(plan) == 5
        assert actions[0] == config.artifact_path
        assert actions[3] == f"scp -P 22 {config.artifact_path} root@10.11.99.1:flashcards"
        assert RUN_CMD in actions[4]
        assert device.events == []
        local.execute_command.assert_not_called()

    def test_show_dry_run_info(self, config, local):
        device = FakeDevice()

        make_service(config, device, local).show_dry_run_info('all')

        assert device.events == []
