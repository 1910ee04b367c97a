#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
本地命令执行器
负责在本地执行命令（交叉编译等）
"""

import os
import shutil
import subprocess
from typing import List, Optional
from rich.console import Console
from rich.panel import Panel

console = Console()

# 与 shell 一致：命令不存在时的退出码
COMMAND_NOT_FOUND = 127


class LocalCommandExecutor:
    """本地命令执行器类"""

    def __init__(self, working_dir: Optional[str] = None):
        """
        初始化本地命令执行器

        Args:
            working_dir: 工作目录（可选，默认为当前目录）
        """
        self.working_dir = working_dir or os.getcwd()

    def execute_command(self, command: List[str], description: str) -> int:
        """
        执行单条本地命令，输出直接显示在终端上

        Args:
            command: 命令及参数列表
            description: 命令说明

        Returns:
            int: 退出码（命令不存在时为 127）
        """
        work_dir = os.path.expanduser(self.working_dir)

        if not os.path.isdir(work_dir):
            console.print(Panel.fit(
                f"[bold red]❌ 工作目录不存在: {work_dir}[/bold red]",
                border_style="red"
            ))
            return COMMAND_NOT_FOUND

        if not self.is_command_available(command[0]):
            console.print(Panel.fit(
                f"[bold red]❌ 未找到命令: {command[0]}[/bold red]\n"
                f"[yellow]请确认已安装并加入 PATH[/yellow]",
                border_style="red"
            ))
            return COMMAND_NOT_FOUND

        console.print(f"[cyan]📂 工作目录:[/cyan] {work_dir}")
        console.print(f"[bold yellow]▶ {description}:[/bold yellow] [cyan]{' '.join(command)}[/cyan]")
        console.print("[dim]" + "─" * 60 + "[/dim]")

        try:
            # 继承当前终端，编译输出实时显示
            result = subprocess.run(command, cwd=work_dir)
            exit_code = result.returncode
        except FileNotFoundError:
            exit_code = COMMAND_NOT_FOUND

        console.print("[dim]" + "─" * 60 + "[/dim]")

        if exit_code != 0:
            self._handle_command_failure(command, exit_code)
        else:
            console.print(f"[green]✓ 命令执行成功[/green]")

        return exit_code

    def _handle_command_failure(self, command: List[str], exit_code: int):
        """
        处理命令执行失败

        Args:
            command: 失败的命令
            exit_code: 退出码
        """
        console.print()
        console.print("[bold red]" + "=" * 60 + "[/bold red]")
        console.print("[bold red]命令执行失败[/bold red]")
        console.print("[bold red]" + "=" * 60 + "[/bold red]")
        console.print(f"[red]命令:[/red] {' '.join(command)}")
        console.print(f"[red]退出码:[/red] {exit_code}")
        console.print()

    @staticmethod
    def is_command_available(command: str) -> bool:
        """
        测试命令是否可用

        Args:
            command: 命令名称（如 'cross', 'cargo'）

        Returns:
            bool: 命令是否可用
        """
        return shutil.which(command) is not None
