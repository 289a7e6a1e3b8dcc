import asyncio

import pytest

from agentflow.cancellation import CancellationToken
from agentflow.errors import ParseError, RunCancelled
from agentflow.utils import compute_backoff, extract_json_object, is_retryable_status


def test_compute_backoff_grows_with_attempts():
    assert compute_backoff(1, jitter=0) == 1.5
    assert compute_backoff(3, jitter=0) == pytest.approx(3.375)


def test_is_retryable_status():
    assert is_retryable_status(429)
    assert is_retryable_status(503)
    assert not is_retryable_status(404)


@pytest.mark.parametrize(
    "text",
    [
        '{"a": 1}',
        'Sure! ```json\n{"a": 1}\n``` Hope that helps.',
        'Here you go: {"a": 1} -- done',
    ],
)
def test_extract_json_object(text):
    assert extract_json_object(text) == {"a": 1}


@pytest.mark.parametrize("text", ["", "no json here", "[1, 2]", None])
def test_extract_json_object_rejects(text):
    with pytest.raises(ParseError):
        extract_json_object(text)


@pytest.mark.asyncio
async def test_cancellation_interrupts_sleep():
    token = CancellationToken()

    async def cancel_soon():
        await asyncio.sleep(0.01)
        token.cancel("stop")

    asyncio.get_running_loop().create_task(cancel_soon())
    with pytest.raises(RunCancelled):
        await token.sleep(30)
    assert token.reason == "stop"


@pytest.mark.asyncio
async def test_uncancelled_sleep_returns():
    token = CancellationToken()
    await token.sleep(0.01)
    await token.sleep(0)
    assert not token.cancelled
