import pytest

from summary_desk.exceptions import NotFoundError, StoreError, TransientStoreError
from summary_desk.utils.retry import retry_policy


class Flaky:
    def __init__(self, failures, error=TransientStoreError):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("flaky", operation="test")
        return "ok"


def test_transient_errors_are_retried_until_success():
    sleeps = []
    fn = Flaky(failures=2)

    assert retry_policy(attempts=3, delay=1.0, sleep=sleeps.append)(fn)() == "ok"
    assert fn.calls == 3
    assert sleeps == [1.0, 1.0]


def test_gives_up_after_attempts_and_reraises_original():
    fn = Flaky(failures=10)

    with pytest.raises(TransientStoreError):
        retry_policy(attempts=3, delay=0, sleep=lambda _s: None)(fn)()
    assert fn.calls == 3


@pytest.mark.parametrize("error", [NotFoundError, StoreError])
def test_non_transient_errors_are_not_retried(error):
    fn = Flaky(failures=1, error=error)

    with pytest.raises(error):
        retry_policy(attempts=3, delay=0, sleep=lambda _s: None)(fn)()
    assert fn.calls == 1


def test_jitter_adds_bounded_wait():
    sleeps = []
    fn = Flaky(failures=1)

    retry_policy(attempts=2, delay=1.0, jitter=0.5, sleep=sleeps.append)(fn)()

    assert len(sleeps) == 1
    assert 1.0 <= sleeps[0] <= 1.5
