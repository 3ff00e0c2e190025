# tests/test_dispatch.py
"""
测试分发层的错误分类与 "重连 + 有限重试" 策略。
"""

from unittest.mock import AsyncMock

import pytest

from heos_core.dispatch import Dispatcher, ErrorKind, Outcome, classify
from heos_core.exceptions import (
    CommandFailure,
    ErrorId,
    ProtocolError,
    TransportError,
    ValidationError,
)


@pytest.fixture
def recover():
    return AsyncMock(return_value=None)


@pytest.mark.asyncio
async def test_success_first_try(recover):
    op = AsyncMock(return_value="ok")
    outcome = await Dispatcher(recover).dispatch(op)

    assert outcome.ok
    assert outcome.value == "ok"
    assert outcome.status == 200
    assert outcome.unwrap() == "ok"
    assert op.await_count == 1
    recover.assert_not_awaited()


@pytest.mark.asyncio
async def test_transport_error_exhausts_budget(recover):
    op = AsyncMock(side_effect=TransportError("down"))
    outcome = await Dispatcher(recover).dispatch(op)

    assert outcome.kind is ErrorKind.TRANSPORT
    assert outcome.status == 500
    assert op.await_count == 4
    assert recover.await_count == 3
    with pytest.raises(TransportError):
        outcome.unwrap()


@pytest.mark.asyncio
async def test_transport_error_once_then_success(recover):
    op = AsyncMock(side_effect=[TransportError("blip"), "ok"])
    outcome = await Dispatcher(recover).dispatch(op)

    assert outcome.ok
    assert outcome.value == "ok"
    assert op.await_count == 2
    assert recover.await_count == 1


@pytest.mark.asyncio
async def test_budget_is_per_call(recover):
    dispatcher = Dispatcher(recover)
    for _ in range(2):
        op = AsyncMock(side_effect=[TransportError("a"), TransportError("b"), "ok"])
        outcome = await dispatcher.dispatch(op)
        assert outcome.ok
    assert recover.await_count == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, kind, status",
    [
        (ValidationError("missing pid"), ErrorKind.VALIDATION, 400),
        (CommandFailure(6, "bad creds"), ErrorKind.COMMAND, 403),
        (CommandFailure(13, "busy"), ErrorKind.COMMAND, 429),
        (CommandFailure(None), ErrorKind.COMMAND, 500),
        (ProtocolError("garbage"), ErrorKind.UNEXPECTED, 500),
        (RuntimeError("boom"), ErrorKind.UNEXPECTED, 500),
    ],
)
async def test_non_transport_errors_are_not_retried(recover, error, kind, status):
    op = AsyncMock(side_effect=error)
    outcome = await Dispatcher(recover).dispatch(op)

    assert outcome.kind is kind
    assert outcome.error is error
    assert outcome.status == status
    assert outcome.reason == str(error)
    assert op.await_count == 1
    recover.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_recovery_consumes_budget():
    recover = AsyncMock(side_effect=TransportError("still down"))
    op = AsyncMock(side_effect=TransportError("down"))
    outcome = await Dispatcher(recover).dispatch(op)

    assert outcome.kind is ErrorKind.TRANSPORT
    assert str(outcome.error) == "still down"
    assert op.await_count == 1
    assert recover.await_count == 3


@pytest.mark.asyncio
async def test_unexpected_recovery_error_surfaces():
    recover = AsyncMock(side_effect=RuntimeError("bug"))
    op = AsyncMock(side_effect=TransportError("down"))
    outcome = await Dispatcher(recover).dispatch(op)

    assert outcome.kind is ErrorKind.UNEXPECTED
    assert recover.await_count == 1


@pytest.mark.asyncio
async def test_zero_retries(recover):
    op = AsyncMock(side_effect=TransportError("down"))
    outcome = await Dispatcher(recover, retries=0).dispatch(op)
    assert outcome.kind is ErrorKind.TRANSPORT
    assert op.await_count == 1
    recover.assert_not_awaited()


@pytest.mark.asyncio
async def test_submit_runs_in_background(recover):
    op = AsyncMock(return_value=42)
    task = Dispatcher(recover).submit(op)
    outcome = await task
    assert outcome.value == 42


def test_classify_is_pure():
    assert classify(ValidationError()) is ErrorKind.VALIDATION
    assert classify(CommandFailure(1)) is ErrorKind.COMMAND
    assert classify(TransportError()) is ErrorKind.TRANSPORT
    assert classify(KeyError("x")) is ErrorKind.UNEXPECTED
    assert ErrorKind.TRANSPORT.retryable
    assert not ErrorKind.COMMAND.retryable


def test_outcome_failure_tags():
    outcome = Outcome.failure(CommandFailure(ErrorId.MEDIA_CANNOT_BE_PLAYED, "nope"))
    assert not outcome.ok
    assert outcome.kind is ErrorKind.COMMAND
    assert outcome.status == 415
