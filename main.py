#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
reMarkable 部署工具主界面
以菜单形式选择部署目标，等同于执行 remarkable-deploy <目标>
"""

import sys
from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table
from rich import box
from rich.text import Text
from remarkable_deploy.cli import main as cli_main, TARGET_HELP

console = Console()

# 菜单序号 → 目标
MENU_TARGETS = {str(idx): target for idx, target in enumerate(TARGET_HELP, 1)}


def show_banner():
    """显示欢迎横幅"""
    banner = Text()
    banner.append("╔═══════════════════════════════════════════╗\n", style="bold cyan")
    banner.append("║         ", style="bold cyan")
    banner.append("📝  reMarkable 部署工具", style="bold yellow")
    banner.append("            ║\n", style="bold cyan")
    banner.append("╚═══════════════════════════════════════════╝", style="bold cyan")

    console.print()
    console.print(banner, justify="left")
    console.print()


def show_menu():
    """显示功能菜单"""
    table = Table(
        title="✨ 部署目标 ✨",
        box=box.ROUNDED,
        title_style="bold magenta",
        border_style="bright_blue",
        show_header=True,
        header_style="bold cyan"
    )

    table.add_column("序号", justify="center", style="bold yellow", width=4)
    table.add_column("目标", style="bold green", width=16)
    table.add_column("描述", style="white", width=40)

    for choice, target in MENU_TARGETS.items():
        table.add_row(choice, target, TARGET_HELP[target])
    table.add_row("0", "退出", "退出工具")

    console.print(table)
    console.print()


def select_target() -> Optional[str]:
    """
    交互式选择目标

    Returns:
        Optional[str]: 目标名称，选择退出时返回 None
    """
    choice = Prompt.ask(
        "请选择目标",
        choices=["0"] + list(MENU_TARGETS),
        default="0"
    )
    return MENU_TARGETS.get(choice)


def main() -> int:
    """主程序入口，额外的命令行参数会原样传给所选目标"""
    show_banner()
    show_menu()

    target = select_target()
    if target is None:
        console.print(Panel.fit(
            "👋 感谢使用，再见！",
            border_style="green",
            title="退出"
        ))
        return 0

    console.print(f"[green]✓ 已选择目标:[/green] [bold]{target}[/bold]")
    return cli_main([target] + sys.argv[1:])


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console.print("\n\n[yellow]⚠ 程序被用户中断[/yellow]")
        sys.exit(130)
