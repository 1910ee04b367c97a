#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
路径工具模块
提供路径处理、文件大小等功能
"""

import os
from typing import Optional


def expand_path(path: str) -> str:
    """
    展开路径（~ 转换为用户主目录）
    
    Args:
        path: 原始路径
        
    Returns:
        str: 展开后的绝对路径
        
    Examples:
        >>> expand_path('~/workspace/project')
        '/Users/username/workspace/project'
    """
    # 展开用户主目录
    expanded = os.path.expanduser(path)
    # 展开环境变量
    expanded = os.path.expandvars(expanded)
    # 转换为绝对路径
    return os.path.abspath(expanded)


def get_file_size(path: str) -> Optional[int]:
    """
    获取文件大小（字节）
    
    Args:
        path: 文件路径
        
    Returns:
        Optional[int]: 文件大小，如果文件不存在则返回 None
    """
    expanded_path = expand_path(path)
    if os.path.isfile(expanded_path):
        return os.path.getsize(expanded_path)
    return None


def format_file_size(size_bytes: int) -> str:
    """
    格式化文件大小为人类可读格式
    
    Args:
        size_bytes: 文件大小（字节）
        
    Returns:
        str: 格式化后的文件大小
        
    Examples:
        >>> format_file_size(1024)
        '1.00 KB'
        >>> format_file_size(1048576)
        '1.00 MB'
    """
    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(size_bytes)
    
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    
    return f"{size:.2f} {units[unit_index]}"


def remote_join(remote_dir: str, name: str) -> str:
    """
    拼接远程路径（统一使用正斜杠）
    
    remote_dir 为空时返回相对路径，SSH 登录后即落在用户主目录下。
    远程路径会被加引号，~ 不会展开，~ 开头的目录按主目录下的相对路径处理
    
    Examples:
        >>> remote_join('', 'flashcards')
        'flashcards'
        >>> remote_join('/home/root/bin/', 'flashcards')
        '/home/root/bin/flashcards'
        >>> remote_join('~/apps', 'flashcards')
        'apps/flashcards'
    """
    remote_dir = remote_dir.replace('\\', '/')
    if remote_dir == '~' or remote_dir.startswith('~/'):
        remote_dir = remote_dir[1:].lstrip('/')
    if not remote_dir:
        return name
    return remote_dir.rstrip('/') + '/' + name
