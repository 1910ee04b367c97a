#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
配置管理器
负责合并默认值、配置文件、环境变量和命令行参数，得到一次调用使用的完整配置

优先级（从高到低）：命令行参数 > 环境变量 > 配置文件 > 内置默认值
"""

import os
import yaml
from dataclasses import dataclass, field
from typing import Dict, Optional, Any, Tuple
from rich.console import Console
from rich.table import Table
from rich import box
from deploy_common.env_utils import EnvUtils
from deploy_common.log_utils import log_info, log_warn
from deploy_common.path_utils import expand_path
from .exceptions import ConfigError

console = Console()

# 非 musl 版本可使用: armv7-unknown-linux-gnueabihf
DEFAULT_TARGET = 'armv7-unknown-linux-musleabihf'
# USB 连接时设备的固定地址
DEFAULT_DEVICE_IP = '10.11.99.1'


@dataclass
class DeployConfig:
    """一次部署所需的全部配置（目标平台 + 设备端点 + 远程运行参数）"""

    target: str = DEFAULT_TARGET
    binary: str = 'flashcards'
    build_tool: str = 'cross'
    project_dir: str = '.'
    device_ip: str = DEFAULT_DEVICE_IP
    device_user: str = 'root'
    device_host: Optional[str] = None
    ssh_port: int = 22
    key_path: Optional[str] = None
    password: Optional[str] = None
    service: str = 'xochitl'
    remote_dir: str = ''
    remote_env: Dict[str, str] = field(default_factory=lambda: {
        'RUST_BACKTRACE': '1',
        'RUST_LOG': 'debug',
    })

    def __post_init__(self):
        if not self.device_host:
            host = self.device_ip
            # IPv6 地址需要加方括号，否则会被当成端口分隔符
            if ':' in host and not host.startswith('['):
                host = f"[{host}]"
            self.device_host = f"{self.device_user}@{host}"

    @property
    def endpoint(self) -> Tuple[str, str, int]:
        """解析 device_host，返回 (用户, 地址, 端口)"""
        user, host, port = parse_device_host(self.device_host, self.device_user)
        return user, host, port if port is not None else self.ssh_port

    @property
    def artifact_path(self) -> str:
        """本地编译产物路径"""
        return os.path.join(self.project_dir, 'target', self.target, 'release', self.binary)


def parse_device_host(device_host: str, default_user: str) -> Tuple[str, str, Optional[int]]:
    """
    解析 user@host[:port] 形式的登录串

    支持 IPv6: user@[fe80::1]:2222

    Returns:
        (用户, 地址, 端口)，未指定端口时端口为 None

    Raises:
        ConfigError: 格式错误
    """
    if '@' in device_host:
        user, host_part = device_host.split('@', 1)
        user = user or default_user
    else:
        user, host_part = default_user, device_host

    port_str = None
    if host_part.startswith('['):
        bracket_end = host_part.find(']')
        if bracket_end == -1:
            raise ConfigError(f"IPv6 地址格式错误: {device_host}")
        host = host_part[1:bracket_end]
        remainder = host_part[bracket_end + 1:]
        if remainder:
            if not remainder.startswith(':'):
                raise ConfigError(f"设备地址格式错误: {device_host}")
            port_str = remainder[1:]
    elif ':' in host_part:
        host, port_str = host_part.rsplit(':', 1)
    else:
        host = host_part

    if not host:
        raise ConfigError(f"设备地址为空: {device_host}")

    port = None
    if port_str is not None:
        port = _parse_port(port_str, 'DEVICE_HOST')
    return user, host, port


def _parse_port(value: Any, source: str) -> int:
    """解析并校验端口号"""
    if isinstance(value, bool):
        raise ConfigError(f"{source} 的端口号必须是整数: {value}")
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{source} 的端口号必须是整数: {value}")
    if not (1 <= port <= 65535):
        raise ConfigError(f"{source} 的端口号无效: {port} (必须在 1-65535 之间)")
    return port


class ConfigManager:
    """配置管理器类"""

    # 项目目录下的默认配置文件名（可选）
    DEFAULT_CONFIG_NAME = 'deploy.yaml'

    # 配置项与环境变量的对应关系
    ENV_KEYS = {
        'target': 'TARGET',
        'device_ip': 'DEVICE_IP',
        'device_host': 'DEVICE_HOST',
        'device_user': 'DEVICE_USER',
        'ssh_port': 'SSH_PORT',
        'key_path': 'SSH_KEY_PATH',
        'password': 'SSH_PASSWORD',
        'binary': 'BINARY',
        'build_tool': 'BUILD_TOOL',
    }

    STRING_KEYS = (
        'target', 'binary', 'build_tool', 'device_ip', 'device_user',
        'device_host', 'key_path', 'password', 'service', 'remote_dir',
    )

    def __init__(self, config_path: Optional[str] = None, project_dir: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_path: 配置文件路径（可选，默认依次使用 DEPLOY_CONFIG 环境变量和项目目录下的 deploy.yaml）
            project_dir: 项目目录（可选，默认当前目录）
        """
        self.project_dir = expand_path(project_dir or os.getcwd())

        # 显式指定的配置文件必须存在，默认配置文件可以不存在
        explicit_path = config_path or EnvUtils.get('DEPLOY_CONFIG')
        self.config_required = explicit_path is not None
        if explicit_path is None:
            explicit_path = os.path.join(self.project_dir, self.DEFAULT_CONFIG_NAME)

        self.config_path = expand_path(explicit_path)
        self.config: Dict[str, Any] = {}

    def load_config(self) -> Dict[str, Any]:
        """
        加载并验证配置文件

        Returns:
            Dict: 配置文件中的配置项（文件不存在时为空字典）

        Raises:
            ConfigError: 文件缺失（显式指定时）、格式错误或配置项无效
        """
        if not os.path.exists(self.config_path):
            if self.config_required:
                raise ConfigError(f"配置文件不存在: {self.config_path}")
            self.config = {}
            return self.config

        log_info(f"[blue]✲ 正在加载配置文件:[/blue] {self.config_path}")
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"配置文件格式错误: {e}")

        # 空文件等同于没有配置
        if data is None:
            data = {}

        self.config = self.validate_config(data)
        return self.config

    def validate_config(self, data: Any) -> Dict[str, Any]:
        """
        验证配置文件的合法性

        Returns:
            Dict: 规范化后的配置项

        Raises:
            ConfigError: 配置无效
        """
        if not isinstance(data, dict):
            raise ConfigError("配置文件顶层必须是字典类型")

        known_keys = set(self.STRING_KEYS) | {'ssh_port', 'remote_env'}
        config: Dict[str, Any] = {}

        for key, value in data.items():
            if key not in known_keys:
                log_warn(f"忽略未知配置项: {key}")
                continue

            if key == 'ssh_port':
                config[key] = _parse_port(value, '配置文件')
            elif key == 'remote_env':
                config[key] = self._validate_remote_env(value)
            elif not isinstance(value, str):
                raise ConfigError(f"配置项 '{key}' 必须是字符串")
            else:
                config[key] = value

        return config

    @staticmethod
    def _validate_remote_env(value: Any) -> Dict[str, str]:
        """验证远程运行环境变量配置"""
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigError("'remote_env' 必须是字典类型")

        env = {}
        for name, env_value in value.items():
            if not isinstance(name, str) or not name.isidentifier():
                raise ConfigError(f"'remote_env' 中的变量名无效: {name}")
            if isinstance(env_value, (dict, list)) or env_value is None:
                raise ConfigError(f"'remote_env' 中变量 '{name}' 的值必须是标量")
            # yaml 中的 1 / true 等标量统一转为字符串
            if isinstance(env_value, bool):
                env_value = 'true' if env_value else 'false'
            env[name] = str(env_value)
        return env

    def resolve(self, overrides: Optional[Dict[str, Any]] = None) -> DeployConfig:
        """
        按优先级合并各层配置，得到最终配置

        device_host 只有在与 device_ip 同层或更高层被设置时才生效，
        否则由 device_user 和 device_ip 推导

        Args:
            overrides: 命令行参数（值为 None 的项视为未指定）

        Returns:
            DeployConfig: 最终配置
        """
        layers = [
            self.config,
            EnvUtils.collect(self.ENV_KEYS),
            {k: v for k, v in (overrides or {}).items() if v is not None},
        ]

        values: Dict[str, Any] = {}
        rank: Dict[str, int] = {}
        for level, layer in enumerate(layers, 1):
            for key, value in layer.items():
                values[key] = value
                rank[key] = level

        if 'ssh_port' in values:
            values['ssh_port'] = _parse_port(values['ssh_port'], 'SSH_PORT')

        if 'device_host' in values and rank['device_host'] < rank.get('device_ip', 0):
            del values['device_host']

        if values.get('key_path'):
            values['key_path'] = expand_path(values['key_path'])

        for key in ('target', 'binary', 'build_tool', 'device_ip', 'device_user', 'service'):
            if key in values and not str(values[key]).strip():
                raise ConfigError(f"配置项 '{key}' 不能为空")

        if '/' in values.get('binary', ''):
            raise ConfigError(f"二进制文件名不能包含路径: {values['binary']}")

        # 只支持 ~ 和 ~/，~user 形式无法在远程展开
        remote_dir = values.get('remote_dir', '')
        if remote_dir.startswith('~') and remote_dir != '~' and not remote_dir.startswith('~/'):
            raise ConfigError(f"远程目录不支持 ~user 形式: {remote_dir}")

        values['project_dir'] = self.project_dir
        config = DeployConfig(**values)

        # 提前解析 device_host，格式错误时立即报错
        parse_device_host(config.device_host, config.device_user)
        return config

    @staticmethod
    def show_config(config: DeployConfig):
        """以表格形式显示最终配置"""
        user, host, port = config.endpoint

        table = Table(
            title="✨ 部署配置 ✨",
            box=box.ROUNDED,
            title_style="bold magenta",
            border_style="bright_blue",
            show_header=True,
            header_style="bold cyan",
        )

        table.add_column("配置项", style="bold yellow", width=16)
        table.add_column("值", style="cyan")

        table.add_row("目标平台", config.target)
        table.add_row("编译工具", config.build_tool)
        table.add_row("项目目录", config.project_dir)
        table.add_row("编译产物", config.artifact_path)
        table.add_row("设备地址", config.device_ip)
        table.add_row("登录串", config.device_host)
        table.add_row("连接", f"{user}@{host}:{port}")
        table.add_row("认证", config.key_path or ("密码" if config.password else "ssh-agent / 默认密钥"))
        table.add_row("冲突服务", config.service)
        table.add_row("远程目录", config.remote_dir or "~ (主目录)")
        table.add_row("运行环境", " ".join(f"{k}={v}" for k, v in config.remote_env.items()) or "-")

        console.print(table)
        console.print()
