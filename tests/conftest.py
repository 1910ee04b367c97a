"""
公共测试夹具
"""

import pytest
from unittest.mock import MagicMock

from remarkable_deploy.config_manager import ConfigManager, DeployConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """清除会影响配置解析的环境变量"""
    for env_key in list(ConfigManager.ENV_KEYS.values()) + ['DEPLOY_CONFIG']:
        monkeypatch.delenv(env_key, raising=False)


@pytest.fixture
def config(tmp_path):
    """默认配置，项目目录指向临时目录"""
    return DeployConfig(project_dir=str(tmp_path))


@pytest.fixture
def artifact(config):
    """在默认位置创建一个假的编译产物"""
    import os
    os.makedirs(os.path.dirname(config.artifact_path))
    with open(config.artifact_path, 'wb') as f:
        f.write(b'\x7fELF' + b'\0' * 2044)
    return config.artifact_path


def make_result(exited=0, stdout='', stderr=''):
    """构造 fabric Result 的替身"""
    return MagicMock(exited=exited, stdout=stdout, stderr=stderr)
