#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
通用工具模块
提供日志、SSH、路径等通用功能
"""

from .log_utils import log_info, log_warn, log_error, log_success, log_debug
from .ssh_client import SSHClient

__all__ = [
    'log_info',
    'log_warn',
    'log_error',
    'log_success',
    'log_debug',
    'SSHClient',
]
