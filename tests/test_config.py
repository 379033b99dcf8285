import pytest

from tailstream.config import TailOptions


def test_defaults_favor_latency():
    opts = TailOptions()
    assert opts.start == 0
    assert opts.start_delay == 1.0
    assert opts.poll_interval == 0.25
    assert opts.backoff == "fixed"
    assert opts.auto_close is True
    assert opts.emit_close is True
    assert opts.fd is None


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        TailOptions(start=-1)
    with pytest.raises(ValueError):
        TailOptions(start_delay=-0.1)
    with pytest.raises(ValueError):
        TailOptions(poll_interval=-1)
    with pytest.raises(ValueError):
        TailOptions(backoff="exponential")
    with pytest.raises(ValueError):
        TailOptions(backoff_factor=0.5)
    with pytest.raises(ValueError):
        TailOptions(fd=-3)


def test_max_interval_never_below_poll_interval():
    opts = TailOptions(poll_interval=3.0, max_interval=1.0)
    assert opts.max_interval == 3.0
