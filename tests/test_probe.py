import asyncio

from focus_timer import probe as probe_module
from focus_timer.probe import NullActiveWindowProbe, create_default_probe


def test_non_windows_platform_gets_null_probe(monkeypatch, caplog):
    monkeypatch.setattr(probe_module.sys, "platform", "linux")
    default = create_default_probe()
    assert isinstance(default, NullActiveWindowProbe)
    assert asyncio.run(default.sample()) is None
    assert "not available on linux" in caplog.text
