#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
reMarkable 设备部署工具包
交叉编译、上传并在设备上前台运行程序
"""

__version__ = '1.0.0'

from .config_manager import ConfigManager, DeployConfig
from .deploy_service import DeployService
from .command_executor import CommandExecutor, CommandResult, CommandStatus, RemoteCommand
from .file_uploader import FileUploader
from .local_command_executor import LocalCommandExecutor
from .exceptions import DeployError, ConfigError, BuildError, ConnectionFailedError, TransferError, RemoteRunError

__all__ = [
    'ConfigManager',
    'DeployConfig',
    'DeployService',
    'CommandExecutor',
    'CommandResult',
    'CommandStatus',
    'RemoteCommand',
    'FileUploader',
    'LocalCommandExecutor',
    'DeployError',
    'ConfigError',
    'BuildError',
    'ConnectionFailedError',
    'TransferError',
    'RemoteRunError',
]
