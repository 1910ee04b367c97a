#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
命令执行器
负责在设备上执行命令

清理类命令（结束旧进程、停止服务）按"尽力而为"执行：失败不会中断流程，
但会按退出码区分为预期失败和意外失败分别记录
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional
from deploy_common.ssh_client import SSHClient
from deploy_common.log_utils import log_info, log_warn, log_debug, log_success


class CommandStatus(Enum):
    """尽力而为命令的执行结果"""

    SUCCESS = 'success'
    EXPECTED_FAILURE = 'expected_failure'
    UNEXPECTED_FAILURE = 'unexpected_failure'


@dataclass(frozen=True)
class RemoteCommand:
    """
    远程命令

    Attributes:
        command: 在设备上执行的 shell 命令
        description: 命令说明
        expected_exit_codes: 视为预期失败的退出码（例如 killall 找不到进程时返回 1）
    """
    command: str
    description: str
    expected_exit_codes: FrozenSet[int] = field(default_factory=frozenset)


@dataclass
class CommandResult:
    """命令执行结果，连接失败时 exit_code 为 None"""

    command: RemoteCommand
    status: CommandStatus
    exit_code: Optional[int]
    output: str = ''

    @property
    def ok(self) -> bool:
        return self.status is CommandStatus.SUCCESS


def classify(command: RemoteCommand, exit_code: Optional[int]) -> CommandStatus:
    """按退出码对结果分类"""
    if exit_code == 0:
        return CommandStatus.SUCCESS
    if exit_code is not None and exit_code in command.expected_exit_codes:
        return CommandStatus.EXPECTED_FAILURE
    return CommandStatus.UNEXPECTED_FAILURE


class CommandExecutor:
    """命令执行器类"""

    def __init__(self, ssh_client: SSHClient):
        """
        初始化命令执行器

        Args:
            ssh_client: SSH 客户端实例
        """
        self.ssh_client = ssh_client

    def run_best_effort(self, command: RemoteCommand) -> CommandResult:
        """
        尽力执行一条命令，任何失败都只记录不抛出

        Args:
            command: 远程命令

        Returns:
            CommandResult: 分类后的执行结果
        """
        log_info(f"[cyan]▶ {command.description}:[/cyan] {command.command}")

        result = self.ssh_client.run(command.command, hide=True)
        if result is None:
            exit_code, output = None, ''
        else:
            exit_code = result.exited
            output = (result.stdout or '') + (result.stderr or '')

        status = classify(command, exit_code)
        self._report(command, status, exit_code, output)
        return CommandResult(command=command, status=status, exit_code=exit_code, output=output)

    def execute_command_group(self, commands: List[RemoteCommand], group_name: str) -> List[CommandResult]:
        """
        依次尽力执行命令组，前一条失败不影响后一条

        Args:
            commands: 命令列表
            group_name: 命令组名称

        Returns:
            List[CommandResult]: 每条命令的执行结果
        """
        if not commands:
            log_warn(f"命令组 '{group_name}' 为空，跳过执行")
            return []

        log_info(f"执行命令组: {group_name} (共 {len(commands)} 条命令)")

        results = []
        for idx, command in enumerate(commands, 1):
            log_debug(f"[{idx}/{len(commands)}]")
            results.append(self.run_best_effort(command))

        return results

    def run_foreground(self, command: str) -> Optional[int]:
        """
        在设备的伪终端中前台运行命令，阻塞直到远程进程退出或会话断开

        Ctrl+C 会转发给远程进程

        Args:
            command: 要执行的命令

        Returns:
            Optional[int]: 远程退出码，连接失败时返回 None
        """
        log_info(f"[bold yellow]▶ 前台运行:[/bold yellow] [cyan]{command}[/cyan]")
        log_info("[dim]" + "─" * 60 + "[/dim]")

        result = self.ssh_client.run(command, hide=False, pty=True)

        log_info("[dim]" + "─" * 60 + "[/dim]")
        if result is None:
            return None
        return result.exited

    @staticmethod
    def _report(command: RemoteCommand, status: CommandStatus, exit_code: Optional[int], output: str):
        """记录执行结果"""
        detail = output.strip()

        if status is CommandStatus.SUCCESS:
            log_success(f"{command.description} 完成")
        elif status is CommandStatus.EXPECTED_FAILURE:
            log_debug(f"{command.description}: 无需处理 (退出码 {exit_code})")
            if detail:
                log_debug(detail)
        else:
            reason = "连接失败" if exit_code is None else f"退出码 {exit_code}"
            log_warn(f"{command.description} 失败 ({reason})，继续执行后续步骤")
            if detail:
                log_debug(detail)
