"""
tests.test_config
~~~~~~~~~~~~~~~~~

按环境推导的配置属性。
"""
from __future__ import annotations

import pytest

from reellive.core.config import Settings


@pytest.fixture(autouse=True)
def _no_log_level_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)


class TestEnvironmentProperties:
    """测试不同环境下的派生属性。"""

    @pytest.mark.parametrize(
        ("environment", "level"),
        [("dev", "INFO"), ("test", "DEBUG"), ("prod", "WARNING")],
    )
    def test_effective_log_level(self, environment: str, level: str) -> None:
        assert Settings(ENVIRONMENT=environment).effective_log_level == level

    def test_log_level_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        assert Settings(ENVIRONMENT="prod").effective_log_level == "ERROR"

    def test_dev_only_debug_and_reload(self) -> None:
        dev = Settings(ENVIRONMENT="dev")
        prod = Settings(ENVIRONMENT="prod")

        assert dev.debug and dev.reload
        assert not prod.debug and not prod.reload

    def test_cors_open_outside_prod(self) -> None:
        assert Settings(ENVIRONMENT="test").allow_cors_all_origins
        assert not Settings(ENVIRONMENT="prod").allow_cors_all_origins
