#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
设备部署服务
负责控制整个部署流程：交叉编译 → 停止冲突服务 → 上传 → 前台运行

每个操作由若干步骤组成，按顺序阻塞执行。编译和上传失败会中断流程，
结束旧进程、启停服务这类清理命令只尽力执行
"""

import shlex
from typing import Callable, Dict, List, Optional, Tuple
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box
from deploy_common.ssh_client import SSHClient
from deploy_common.path_utils import remote_join
from .config_manager import DeployConfig, ConfigManager
from .command_executor import CommandExecutor, CommandResult, RemoteCommand
from .exceptions import BuildError, ConnectionFailedError, TransferError, RemoteRunError
from .file_uploader import FileUploader
from .local_command_executor import LocalCommandExecutor

console = Console()

# killall 找不到进程时返回 1
KILLALL_NO_PROCESS = 1


class DeployService:
    """设备部署服务类"""

    # 每个操作对应的步骤（按顺序执行）
    OPERATIONS: Dict[str, Tuple[str, ...]] = {
        'all': ('build', 'report_size', 'stop_conflicting', 'transfer', 'run_binary'),
        'build': ('build',),
        'deploy': ('report_size', 'stop_conflicting', 'transfer', 'run_binary'),
        'push': ('report_size', 'transfer'),
        'run': ('stop_conflicting', 'run_binary'),
        'start-xochitl': ('start_service',),
        'stop-xochitl': ('stop_service',),
    }

    STEP_TITLES = {
        'build': "🔨 交叉编译",
        'report_size': "📦 编译产物",
        'stop_conflicting': "🛑 停止冲突程序",
        'transfer': "📤 文件上传",
        'run_binary': "🚀 前台运行",
        'start_service': "▶️  恢复默认程序",
        'stop_service': "⏸️  停止默认程序",
    }

    def __init__(self, config: DeployConfig,
                 ssh_client: Optional[SSHClient] = None,
                 local_command_executor: Optional[LocalCommandExecutor] = None):
        """
        初始化部署服务

        Args:
            config: 最终配置
            ssh_client: SSH 客户端（可选，默认按配置创建，首次使用时才连接）
            local_command_executor: 本地命令执行器（可选）
        """
        self.config = config

        if ssh_client is None:
            user, host, port = config.endpoint
            ssh_client = SSHClient(host, user, port,
                                   key_path=config.key_path,
                                   password=config.password)
        self.ssh_client = ssh_client
        self.local_command_executor = local_command_executor or LocalCommandExecutor(config.project_dir)
        self.command_executor = CommandExecutor(self.ssh_client)
        self.file_uploader = FileUploader(self.ssh_client)

        # {步骤名: 结果说明}
        self.results: Dict[str, str] = {}

    # ========== 命令构造 ==========

    @property
    def remote_path(self) -> str:
        """设备上的二进制文件路径（默认位于登录用户主目录）"""
        return remote_join(self.config.remote_dir, self.config.binary)

    def kill_command(self) -> RemoteCommand:
        return RemoteCommand(
            command=f"killall -q -9 {shlex.quote(self.config.binary)}",
            description=f"结束 {self.config.binary}",
            expected_exit_codes=frozenset({KILLALL_NO_PROCESS}),
        )

    def service_command(self, action: str) -> RemoteCommand:
        return RemoteCommand(
            command=f"systemctl {action} {shlex.quote(self.config.service)}",
            description=f"systemctl {action} {self.config.service}",
        )

    def run_command(self) -> str:
        """前台运行命令，带上远程环境变量"""
        path = self.remote_path
        if '/' not in path:
            path = './' + path
        env = ' '.join(f"{name}={shlex.quote(value)}" for name, value in self.config.remote_env.items())
        return f"{env} {shlex.quote(path)}" if env else shlex.quote(path)

    def build_command(self) -> List[str]:
        return [self.config.build_tool, 'build', '--release', f'--target={self.config.target}']

    # ========== 操作入口 ==========

    def all(self) -> int:
        return self.execute('all')

    def build(self) -> int:
        return self.execute('build')

    def deploy(self) -> int:
        return self.execute('deploy')

    def push(self) -> int:
        return self.execute('push')

    def run(self) -> int:
        return self.execute('run')

    def start_xochitl(self) -> int:
        return self.execute('start-xochitl')

    def stop_xochitl(self) -> int:
        return self.execute('stop-xochitl')

    def execute(self, operation: str) -> int:
        """
        执行操作中的全部步骤

        Args:
            operation: 操作名称（见 OPERATIONS）

        Returns:
            int: 退出码（成功为 0）

        Raises:
            BuildError: 编译失败
            ConnectionFailedError: 无法连接设备
            TransferError: 上传失败
            RemoteRunError: 远程程序非零退出
        """
        steps = self.OPERATIONS[operation]
        handlers = self._step_handlers()
        self.results = {}

        try:
            for idx, step in enumerate(steps, 1):
                console.print()
                console.print(Panel.fit(
                    f"[bold yellow]阶段 {idx}/{len(steps)}: {self.STEP_TITLES[step]}[/bold yellow]",
                    border_style="blue"
                ))
                handlers[step]()

            self._show_summary(operation)
            return 0

        finally:
            # 关闭连接
            self.ssh_client.disconnect()

    def _step_handlers(self) -> Dict[str, Callable[[], None]]:
        return {
            'build': self._build,
            'report_size': self._report_size,
            'stop_conflicting': self._stop_conflicting,
            'transfer': self._transfer,
            'run_binary': self._run_binary,
            'start_service': lambda: self._control_service('start'),
            'stop_service': lambda: self._control_service('stop'),
        }

    # ========== 步骤 ==========

    def _build(self):
        """交叉编译，失败时中断流程"""
        exit_code = self.local_command_executor.execute_command(
            self.build_command(),
            f"交叉编译 ({self.config.target})"
        )
        if exit_code != 0:
            self.results['build'] = f"失败 (退出码 {exit_code})"
            raise BuildError(f"交叉编译失败 (退出码 {exit_code})，终止部署", exit_code=exit_code)
        self.results['build'] = "成功"

    def _report_size(self):
        """上报编译产物大小（仅诊断用）"""
        size = self.file_uploader.report_size(self.config.artifact_path)
        self.results['report_size'] = "缺失" if size is None else f"{size} 字节"

    def _best_effort(self, step: str, commands: List[RemoteCommand], group_name: str) -> List[CommandResult]:
        results = self.command_executor.execute_command_group(commands, group_name)
        self.results[step] = ", ".join(
            f"{r.command.description}: {r.status.value}" for r in results
        )
        return results

    def _stop_conflicting(self):
        """尽力结束旧进程并停止默认前台程序，失败不影响后续步骤"""
        self._best_effort('stop_conflicting',
                          [self.kill_command(), self.service_command('stop')],
                          "停止冲突程序")

    def _control_service(self, action: str):
        """尽力结束已部署的程序，然后启动/停止默认前台程序"""
        self._best_effort(f'{action}_service',
                          [self.kill_command(), self.service_command(action)],
                          f"{action} {self.config.service}")

    def _transfer(self):
        """上传编译产物，失败时中断流程"""
        if not self.ssh_client.connect():
            self.results['transfer'] = "连接失败"
            raise ConnectionFailedError(f"无法连接到设备: {self.config.device_host}")

        if not self.file_uploader.upload_file(self.config.artifact_path, self.remote_path):
            self.results['transfer'] = "失败"
            raise TransferError(f"上传失败: {self.config.artifact_path} → {self.ssh_client.destination}:{self.remote_path}")
        self.results['transfer'] = "成功"

    def _run_binary(self):
        """前台运行，阻塞直到远程进程退出"""
        exit_code = self.command_executor.run_foreground(self.run_command())
        if exit_code is None:
            self.results['run_binary'] = "连接失败"
            raise ConnectionFailedError(f"无法连接到设备: {self.config.device_host}")
        self.results['run_binary'] = f"退出码 {exit_code}"
        if exit_code != 0:
            raise RemoteRunError(f"{self.config.binary} 退出码 {exit_code}", exit_code=exit_code)

    # ========== 展示 ==========

    def plan(self, operation: str) -> List[Tuple[str, str]]:
        """
        列出操作会执行的步骤（用于模拟执行）

        Returns:
            List[Tuple[str, str]]: [(步骤说明, 具体动作), ...]
        """
        destination = self.ssh_client.destination
        port = self.ssh_client.port
        details = {
            'build': [' '.join(self.build_command())],
            'report_size': [self.config.artifact_path],
            'stop_conflicting': [
                f"ssh {destination} '{self.kill_command().command}' (尽力)",
                f"ssh {destination} '{self.service_command('stop').command}' (尽力)",
            ],
            'transfer': [f"scp -P {port} {self.config.artifact_path} {destination}:{self.remote_path}"],
            'run_binary': [f"ssh -t {destination} '{self.run_command()}'"],
            'start_service': [
                f"ssh {destination} '{self.kill_command().command}' (尽力)",
                f"ssh {destination} '{self.service_command('start').command}' (尽力)",
            ],
            'stop_service': [
                f"ssh {destination} '{self.kill_command().command}' (尽力)",
                f"ssh {destination} '{self.service_command('stop').command}' (尽力)",
            ],
        }

        plan = []
        for step in self.OPERATIONS[operation]:
            for action in details[step]:
                plan.append((self.STEP_TITLES[step], action))
        return plan

    def show_dry_run_info(self, operation: str):
        """显示模拟执行信息"""
        console.print(Panel.fit(
            "[bold yellow]模拟执行模式（不会实际执行）[/bold yellow]",
            border_style="yellow",
            title="🔍 模拟执行"
        ))
        ConfigManager.show_config(self.config)

        table = Table(
            title=f"操作: {operation}",
            box=box.ROUNDED,
            border_style="bright_blue",
            show_header=True,
            header_style="bold cyan",
            show_lines=True
        )
        table.add_column("序号", justify="center", style="bold yellow", width=4)
        table.add_column("步骤", style="bold green", width=18)
        table.add_column("动作", style="cyan")

        for idx, (title, action) in enumerate(self.plan(operation), 1):
            table.add_row(str(idx), title, action)

        console.print(table)
        console.print()
        console.print(Panel.fit(
            "[bold green]✓ 模拟执行完成（未实际执行）[/bold green]",
            border_style="green"
        ))

    def _show_summary(self, operation: str):
        """显示执行摘要"""
        console.print()
        table = Table(
            title=f"📊 {operation} 摘要",
            box=box.ROUNDED,
            border_style="bright_blue",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("步骤", style="bold yellow", width=18)
        table.add_column("结果", style="white")

        table.add_row("设备", f"[cyan]{self.ssh_client.destination}:{self.ssh_client.port}[/cyan]")
        for step in self.OPERATIONS[operation]:
            table.add_row(self.STEP_TITLES[step], self.results.get(step, "-"))

        console.print(table)
        console.print()
