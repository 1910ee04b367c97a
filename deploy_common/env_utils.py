#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
环境变量工具模块
提供环境变量的读取功能
"""

import os
from typing import Optional, Dict


class EnvUtils:
    """环境变量工具类"""

    @staticmethod
    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        """
        获取环境变量，空字符串视为未设置
        
        参数:
            key: 环境变量名
            default: 默认值
            
        返回:
            环境变量值，如果不存在则返回默认值
        """
        value = os.getenv(key)
        if value is None or value.strip() == '':
            return default
        return value.strip()

    @staticmethod
    def collect(keys: Dict[str, str]) -> Dict[str, str]:
        """
        批量读取环境变量
        
        参数:
            keys: {配置项名: 环境变量名}
            
        返回:
            只包含已设置变量的 {配置项名: 值}
        """
        values = {}
        for name, env_key in keys.items():
            value = EnvUtils.get(env_key)
            if value is not None:
                values[name] = value
        return values

