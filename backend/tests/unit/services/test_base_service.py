import logging
from unittest.mock import Mock

import pytest

from appointments.core.clock import SystemClock
from appointments.services import base as base_module
from appointments.services.base import BaseService


class TimedService(BaseService):
    @BaseService.measure_operation("do_work")
    def do_work(self, fail: bool = False) -> str:
        if fail:
            raise RuntimeError("boom")
        return "done"


@pytest.fixture
def service() -> TimedService:
    BaseService._class_metrics.pop(TimedService.__name__, None)
    return TimedService(Mock())


def test_defaults_to_system_clock(service: TimedService) -> None:
    assert isinstance(service.clock, SystemClock)


def test_measure_operation_counts_successes_and_failures(service: TimedService) -> None:
    assert service.do_work() == "done"
    with pytest.raises(RuntimeError):
        service.do_work(fail=True)

    stats = service.get_metrics()["do_work"]
    assert stats["count"] == 2
    assert stats["success_count"] == 1
    assert stats["failure_count"] == 1
    assert stats["avg_time"] >= 0


def test_slow_operation_is_logged(service: TimedService, monkeypatch, caplog) -> None:
    monkeypatch.setattr(base_module, "SLOW_OPERATION_SECONDS", -1.0)

    with caplog.at_level(logging.WARNING):
        service.do_work()

    assert "Slow operation detected: do_work" in caplog.text
