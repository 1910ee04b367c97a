#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
部署异常
致命错误会中断整个流程，exit_code 会作为进程退出码返回给操作者
"""

from typing import Optional


class DeployError(Exception):
    """部署失败的基类"""

    exit_code = 1

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(DeployError):
    """配置文件或参数无效"""

    exit_code = 2


class BuildError(DeployError):
    """交叉编译失败，或编译工具不存在"""


class ConnectionFailedError(DeployError):
    """无法连接到设备（与 ssh 一致，退出码 255）"""

    exit_code = 255


class TransferError(DeployError):
    """上传二进制文件失败"""


class RemoteRunError(DeployError):
    """远程程序以非零退出码结束"""
