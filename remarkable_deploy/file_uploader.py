#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
文件上传器
负责上报编译产物大小并把它上传到设备
"""

import os
from typing import Optional
from rich.console import Console
from rich.progress import Progress, TextColumn, BarColumn, TaskProgressColumn, FileSizeColumn, TransferSpeedColumn, TimeRemainingColumn
from deploy_common.ssh_client import SSHClient
from deploy_common.log_utils import log_info, log_warn, log_error
from deploy_common.path_utils import get_file_size, format_file_size

console = Console()


class FileUploader:
    """文件上传器类"""

    def __init__(self, ssh_client: SSHClient):
        """
        初始化文件上传器

        Args:
            ssh_client: SSH 客户端实例
        """
        self.ssh_client = ssh_client

    @staticmethod
    def report_size(local_path: str) -> Optional[int]:
        """
        显示本地文件大小（仅用于诊断，文件不存在时只给出警告）

        Args:
            local_path: 本地文件路径

        Returns:
            Optional[int]: 文件大小，文件不存在时返回 None
        """
        size = get_file_size(local_path)
        if size is None:
            log_warn(f"编译产物不存在: {local_path}")
            return None

        log_info(f"[cyan]📦 {format_file_size(size)}[/cyan]\t{local_path}")
        return size

    def upload_file(self, local_path: str, remote_path: str) -> bool:
        """
        上传单个文件并显示进度条，远程同名文件会被覆盖

        Args:
            local_path: 本地文件路径
            remote_path: 远程文件路径

        Returns:
            bool: 上传是否成功
        """
        if not os.path.isfile(local_path):
            log_error(f"文件不存在: {local_path}")
            return False

        file_size = os.path.getsize(local_path)
        file_name = os.path.basename(local_path)

        log_info(f"上传文件: {local_path}")
        log_info(f"目标路径: {self.ssh_client.destination}:{remote_path}")

        with Progress(
            TextColumn("[bold blue]{task.description:<30}"),
            BarColumn(complete_style="green"),
            FileSizeColumn(),
            TransferSpeedColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:
            task_id = progress.add_task(f"上传 {file_name}...", total=file_size)

            def progress_callback(filename, size, sent):
                progress.update(task_id, completed=sent)

            result = self.ssh_client.put(local_path, remote_path, progress_callback)

            if result:
                # 确保进度条完成
                progress.update(task_id, completed=file_size)

        if not result:
            log_error(f"文件上传失败: {file_name}")
            return False

        log_info(f"文件上传成功: {file_name}")
        return True
