#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
SSH 客户端模块
提供 SSH 连接、远程命令执行和 SCP 上传的基础功能。
"""

import os
from typing import Optional, Any, Callable, Dict
from fabric import Connection
from scp import SCPClient
from .log_utils import log_info, log_error, log_debug


class SSHClient:
    """SSH 客户端类，提供连接和命令执行功能"""

    def __init__(self, host: str, user: str, port: int = 22,
                 key_path: Optional[str] = None, password: Optional[str] = None):
        """
        初始化 SSH 客户端（不会立即连接，首次使用时才建立连接）

        参数:
            host: 设备地址
            user: 登录用户
            port: SSH 端口
            key_path: SSH 私钥路径（可选）
            password: 登录密码，或私钥的 passphrase（可选）
        """
        self.host = host
        self.user = user
        self.port = port
        self.key_path = key_path
        self.password = password
        self.conn: Optional[Connection] = None

    @property
    def destination(self) -> str:
        """user@host 形式的登录串"""
        return f"{self.user}@{self.host}"

    def connect(self) -> bool:
        """
        建立连接（已连接时直接返回）

        返回:
            连接是否可用
        """
        return self.__check_connection()

    def disconnect(self):
        """关闭远程连接"""
        if self.conn:
            self.conn.close()
            log_info("远程连接已关闭")
            self.conn = None

    def run(self, command: str, hide: bool = False, pty: bool = False) -> Any:
        """
        执行 SSH 命令，非零退出码不会抛出异常

        参数:
            command: 要执行的命令
            hide: 是否隐藏输出
            pty: 是否分配伪终端（前台运行程序时使用，Ctrl+C 会转发到远程）
        返回:
            fabric 的 Result 对象（通过 .exited 读取退出码），连接失败时返回 None
        """
        if not self.__check_connection():
            return None
        try:
            log_debug(f"$ ssh {self.destination} '{command}'")
            return self.conn.run(command, hide=hide, pty=pty, warn=True)
        except Exception as e:
            log_error(f"执行命令失败: {e}")
            return None

    def put(self, local_path: str, remote_path: str, progress_callback: Optional[Callable] = None) -> bool:
        """
        通过 SCP 上传单个文件，远程同名文件会被覆盖

        参数:
            local_path: 本地文件路径
            remote_path: 远程文件路径（相对路径以登录用户主目录为基准）
            progress_callback: 进度回调函数 (filename, size, sent)

        返回:
            上传是否成功
        """
        if not self.__check_connection():
            return False

        try:
            # 复用 fabric 底层的 paramiko 连接
            transport = self.conn.client.get_transport()

            # 设备上的 dropbear 不一定提供 sftp，统一使用 scp
            with SCPClient(transport, progress=progress_callback) as scp:
                scp.put(local_path, remote_path)

            return True
        except Exception as e:
            log_error(f"文件传输失败: {e}")
            return False

    def _connect_kwargs(self) -> Dict[str, Any]:
        """组装 paramiko 连接参数"""
        connect_kwargs: Dict[str, Any] = {
            "banner_timeout": 60,
            "timeout": 30,
        }
        if self.key_path:
            connect_kwargs["key_filename"] = self.key_path
            # 有密钥时，密码作为密钥的 passphrase
            if self.password:
                connect_kwargs["passphrase"] = self.password
        elif self.password:
            connect_kwargs["password"] = self.password
        return connect_kwargs

    def __create_connection(self) -> Optional[Connection]:
        """创建 SSH 连接"""
        if not self.host or not self.user:
            log_error("缺少必要的连接信息")
            return None

        if self.key_path and not os.path.exists(self.key_path):
            log_error(f"SSH 密钥文件不存在: {self.key_path}")
            return None

        try:
            # 未配置密钥和密码时，交给 ssh-agent 和默认密钥
            if self.key_path:
                log_info(f"使用 SSH 密钥认证: {self.key_path}")
            elif self.password:
                log_info("使用密码认证")

            log_info(f"正在创建与设备 {self.host}:{self.port} 的链接...")
            self.conn = Connection(
                host=self.host,
                port=self.port,
                user=self.user,
                connect_kwargs=self._connect_kwargs()
            )

            # 测试连接
            self.conn.run("echo 'Connection test'", hide=True)
            log_info("远程连接建立成功")
            return self.conn

        except Exception as e:
            log_error(f"建立连接失败: {e}")
            self.conn = None
            return None

    def __check_connection(self) -> bool:
        """检查连接是否有效"""
        if self.conn is None:
            return self.__create_connection() is not None
        if self.conn.is_connected:
            return True
        log_error("连接已断开，重新建立连接")
        self.conn = None
        return self.__create_connection() is not None
