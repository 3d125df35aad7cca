import asyncio
import io
import random
import threading

import pytest

from saas_reviews.delay import DelayPolicy
from saas_reviews.errors import BlockingDetected
from saas_reviews.guard import BlockingGuard, CaptchaSignal, ConsoleCaptchaSignal, GuardState, is_blocking_title


@pytest.mark.parametrize(
    "title, blocked",
    [
        ("Access Denied", True),
        ("Please verify you are human", True),
        ("Error 429 Too Many Requests", True),
        ("Security Check", True),
        ("Slack Reviews 2024 | G2", False),
        ("", False),
    ],
)
def test_blocking_title_keywords(title, blocked):
    assert is_blocking_title(title) is blocked


@pytest.mark.asyncio
async def test_clear_page_passes(fake_page):
    guard = BlockingGuard(CaptchaSignal(), "G2")
    assert await guard.check(fake_page()) is GuardState.CLEAR


@pytest.mark.asyncio
async def test_blocked_title_aborts(fake_page):
    guard = BlockingGuard(CaptchaSignal(), "G2")
    with pytest.raises(BlockingDetected):
        await guard.check(fake_page(title="Access denied"))
    assert guard.state is GuardState.BLOCKED


@pytest.mark.asyncio
async def test_captcha_waits_for_signal(fake_page):
    signal = CaptchaSignal()
    guard = BlockingGuard(signal, "Capterra")
    check = asyncio.ensure_future(guard.check(fake_page(markers={"#recaptcha"})))

    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert not check.done()
    assert guard.state is GuardState.CAPTCHA_PENDING

    signal.resolve()
    assert await asyncio.wait_for(check, timeout=1) is GuardState.CLEAR
    assert guard.state is GuardState.CLEAR


@pytest.mark.asyncio
async def test_signal_resolved_in_advance_releases_immediately(fake_page):
    signal = CaptchaSignal()
    signal.resolve()
    guard = BlockingGuard(signal)
    assert await guard.check(fake_page(markers={".recaptcha"})) is GuardState.CLEAR


class StuckStdin:
    def __init__(self):
        self.release = threading.Event()

    def readline(self):
        self.release.wait(5)
        return "\n"


@pytest.mark.asyncio
async def test_console_signal_released_by_enter():
    signal = ConsoleCaptchaSignal(stream=io.StringIO("\n"))
    await asyncio.wait_for(signal.wait(), timeout=1)


@pytest.mark.asyncio
async def test_console_signal_released_by_resolve():
    stdin = StuckStdin()
    signal = ConsoleCaptchaSignal(stream=stdin)
    waiting = asyncio.ensure_future(signal.wait())
    await asyncio.sleep(0)

    assert signal._reader.daemon
    signal.resolve()
    await asyncio.wait_for(waiting, timeout=1)
    stdin.release.set()


@pytest.mark.asyncio
async def test_cancelled_console_wait_leaves_no_executor_work():
    stdin = StuckStdin()
    signal = ConsoleCaptchaSignal(stream=stdin)
    waiting = asyncio.ensure_future(signal.wait())
    await asyncio.sleep(0)
    waiting.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiting

    await asyncio.wait_for(asyncio.get_running_loop().shutdown_default_executor(), timeout=1)
    stdin.release.set()


@pytest.mark.asyncio
async def test_delay_adds_jitter_to_base():
    slept = []

    async def sleep(seconds):
        slept.append(seconds)

    policy = DelayPolicy(500, rng=random.Random(1), sleep=sleep)
    twin = DelayPolicy(500, rng=random.Random(1), sleep=sleep)

    ms = await policy.pause()
    assert 1500 <= ms <= 3500
    assert slept == [ms / 1000]
    assert await twin.pause() == ms

    settle = await policy.settle()
    assert 1000 <= settle <= 3000
