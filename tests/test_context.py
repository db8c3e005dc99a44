import logging
import threading

import pytest

from actlocal.context import (
    Cancelled,
    background,
    dryrun,
    job_error,
    logger,
    set_job_error,
    with_dryrun,
    with_job_error_container,
    with_logger,
)


def test_value_lookup_walks_parents():
    ctx = background().with_value("a", 1).with_value("b", 2)
    assert ctx.value("a") == 1
    assert ctx.value("b") == 2
    assert ctx.value("missing") is None


def test_value_shadowing_keeps_parent_intact():
    parent = background().with_value("a", 1)
    child = parent.with_value("a", 3)
    assert child.value("a") == 3
    assert parent.value("a") == 1


def test_dryrun_default_and_override():
    ctx = background()
    assert dryrun(ctx) is False
    on = with_dryrun(ctx, True)
    assert dryrun(on) is True
    assert dryrun(with_dryrun(on, False)) is False


def test_job_error_container_shared_by_children():
    ctx = with_job_error_container(background())
    assert job_error(ctx) is None
    child = ctx.with_value("k", "v")
    err = ValueError("boom")
    set_job_error(child, err)
    assert job_error(ctx) is err
    assert job_error(child) is err


def test_job_error_without_container():
    assert job_error(background()) is None
    with pytest.raises(LookupError):
        set_job_error(background(), ValueError("x"))


def test_logger_default_and_custom():
    assert logger(background()) is logging.getLogger("actlocal")
    custom = logging.getLogger("custom-test-logger")
    assert logger(with_logger(background(), custom)) is custom


def test_cancel_propagates_to_children():
    parent = background().with_cancel()
    child = parent.with_value("k", 1).with_cancel()
    assert child.err() is None
    parent.cancel()
    assert isinstance(child.err(), Cancelled)
    assert isinstance(parent.err(), Cancelled)
    assert child.wait(0) is True


def test_cancel_child_leaves_parent_running():
    parent = background().with_cancel()
    child = parent.with_cancel()
    child.cancel()
    assert isinstance(child.err(), Cancelled)
    assert parent.err() is None


def test_with_cancel_on_cancelled_parent():
    parent = background().with_cancel()
    parent.cancel()
    child = parent.with_cancel()
    assert child.wait(0) is True
    assert isinstance(child.err(), Cancelled)


def test_background_cannot_be_cancelled():
    ctx = background()
    with pytest.raises(RuntimeError):
        ctx.cancel()
    assert ctx.wait(0.01) is False
    assert ctx.err() is None


def test_wait_wakes_on_cancel_from_other_thread():
    ctx = background().with_cancel()
    timer = threading.Timer(0.05, ctx.cancel)
    timer.start()
    try:
        assert ctx.wait(5) is True
    finally:
        timer.cancel()