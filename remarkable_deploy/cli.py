#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
命令行入口
"""

import argparse
import sys
from typing import List, Optional
from rich.console import Console
from rich.panel import Panel
from deploy_common.log_utils import log_error
from . import __version__
from .config_manager import ConfigManager, DeployConfig
from .deploy_service import DeployService
from .exceptions import DeployError

console = Console()

# Ctrl+C 中断时的退出码（与 shell 一致）
INTERRUPTED = 130

# 清理类操作总是返回 0
ALWAYS_SUCCEED = ('start-xochitl', 'stop-xochitl')

TARGET_HELP = {
    'all': '编译并部署（默认）',
    'build': '交叉编译',
    'deploy': '停止冲突程序、上传并前台运行',
    'push': '只上传，不重启',
    'run': '重启已上传的程序',
    'start-xochitl': '结束已部署程序，恢复默认前台程序',
    'stop-xochitl': '结束已部署程序，停止默认前台程序',
    'show-config': '显示最终配置',
}


def build_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='remarkable-deploy',
        description='交叉编译程序并部署到 reMarkable 设备',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="目标:\n" + "\n".join(f"  {name:<15}{text}" for name, text in TARGET_HELP.items()) + """

使用示例:
  # 编译并部署
  remarkable-deploy

  # 只上传新版本
  remarkable-deploy push

  # 通过 WiFi 部署
  DEVICE_IP=192.168.1.42 remarkable-deploy deploy

  # 模拟执行
  remarkable-deploy deploy -d
        """
    )

    parser.add_argument(
        'target',
        nargs='?',
        default='all',
        choices=list(TARGET_HELP),
        metavar='TARGET',
        help='要执行的目标 (默认: all)'
    )

    parser.add_argument(
        '-c', '--config',
        type=str,
        default=None,
        help=f'配置文件路径 (默认: 项目目录下的 {ConfigManager.DEFAULT_CONFIG_NAME})'
    )

    parser.add_argument('--project-dir', type=str, help='项目目录 (默认: 当前目录)')
    parser.add_argument('--target', dest='target_triple', type=str, help='交叉编译目标平台')
    parser.add_argument('--binary', type=str, help='二进制文件名')
    parser.add_argument('--device-ip', type=str, help='设备地址')
    parser.add_argument('--device-user', type=str, help='登录用户')
    parser.add_argument('--device-host', type=str, help='登录串 user@host[:port]')
    parser.add_argument('-p', '--port', dest='ssh_port', type=int, help='SSH 端口')
    parser.add_argument('-k', '--key', dest='key_path', type=str, help='SSH 私钥路径')

    parser.add_argument(
        '-d', '--dry-run',
        action='store_true',
        help='模拟执行（不实际编译、上传和执行命令）'
    )

    parser.add_argument(
        '-v', '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    return parser


def resolve_config(args: argparse.Namespace) -> DeployConfig:
    """按优先级合并配置"""
    config_manager = ConfigManager(args.config, args.project_dir)
    config_manager.load_config()
    return config_manager.resolve({
        'target': args.target_triple,
        'binary': args.binary,
        'device_ip': args.device_ip,
        'device_user': args.device_user,
        'device_host': args.device_host,
        'ssh_port': args.ssh_port,
        'key_path': args.key_path,
    })


def main(argv: Optional[List[str]] = None) -> int:
    """
    主函数

    Returns:
        int: 进程退出码
    """
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(args)

        if args.target == 'show-config':
            ConfigManager.show_config(config)
            return 0

        service = DeployService(config)

        if args.dry_run:
            service.show_dry_run_info(args.target)
            return 0

        exit_code = service.execute(args.target)

    except KeyboardInterrupt:
        console.print("\n\n[yellow]⚠ 操作已取消[/yellow]")
        return INTERRUPTED
    except DeployError as e:
        log_error(str(e))
        return e.exit_code

    if args.target in ALWAYS_SUCCEED:
        return 0

    if exit_code == 0:
        console.print(Panel.fit(
            "[bold green]🎉 完成！[/bold green]",
            border_style="green"
        ))
    return exit_code


if __name__ == '__main__':
    sys.exit(main())
