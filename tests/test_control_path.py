from __future__ import annotations

import threading

import pytest

from control_path import ControlPath


def test_call_runs_on_single_thread_in_order() -> None:
    path = ControlPath()
    seen: list[tuple[int, int]] = []
    try:
        for i in range(5):
            path.post(lambda i=i: seen.append((i, threading.get_ident())))
        path.flush(timeout=5)
    finally:
        path.shutdown()

    assert [i for i, _ in seen] == [0, 1, 2, 3, 4]
    assert len({ident for _, ident in seen}) == 1


def test_call_returns_value_and_reraises() -> None:
    path = ControlPath()
    try:
        assert path.call(lambda: 42) == 42
        with pytest.raises(ValueError):
            path.call(lambda: (_ for _ in ()).throw(ValueError("bad")))
    finally:
        path.shutdown()


def test_nested_call_runs_inline() -> None:
    path = ControlPath()
    try:
        assert path.call(lambda: path.call(lambda: "inner")) == "inner"
    finally:
        path.shutdown()


def test_post_after_shutdown_is_dropped() -> None:
    path = ControlPath()
    path.shutdown()

    assert path.post(lambda: None) is None
    assert path.closed is True


def test_failed_post_is_logged(caplog) -> None:  # noqa: ANN001
    path = ControlPath()
    try:
        path.post(lambda: 1 / 0)
        path.flush(timeout=5)
    finally:
        path.shutdown()

    assert "control path task failed" in caplog.text
