import threading
import time

import pytest

from memguard.core.coffer import INTERVAL, Coffer, CofferExpiredError

ZEROS = bytes(32)


def _value(coffer):
    view = coffer.view()
    value = bytes(view.data)
    view.destroy()
    return value


def test_new_coffer():
    s = Coffer()
    with s.lock:
        assert s._left is not None and s._right is not None
        assert len(s._left.data) == 32
        assert len(s._right.data) == 32
        assert bytes(s._left.data) != ZEROS
        assert bytes(s._right.data) != ZEROS
    s.destroy()
    assert s.destroyed()


def test_coffer_init():
    s = Coffer()
    value = _value(s)
    s.init()
    new_value = _value(s)
    assert value != new_value
    s.destroy()
    with pytest.raises(CofferExpiredError):
        s.init()


def test_coffer_view():
    s = Coffer()
    view = s.view()
    assert len(view.data) == 32
    assert bytes(view.data) != ZEROS
    view.destroy()
    s.destroy()
    with pytest.raises(CofferExpiredError):
        s.view()


def test_coffer_rekey():
    s = Coffer()
    original = _value(s)
    with s.lock:
        left = bytes(s._left.data)
        right = bytes(s._right.data)
    s.rekey()
    assert _value(s) == original
    with s.lock:
        assert bytes(s._left.data) != left or bytes(s._right.data) != right
        assert bytes(s._left.data) != left
        assert bytes(s._right.data) != right
    s.destroy()
    with pytest.raises(CofferExpiredError):
        s.rekey()


def test_background_rekey_keeps_value():
    s = Coffer()
    original = _value(s)
    with s.lock:
        left = bytes(s._left.data)
    time.sleep(INTERVAL * 2.5)
    assert _value(s) == original
    with s.lock:
        assert bytes(s._left.data) != left
    s.destroy()


def test_coffer_destroy():
    s = Coffer()
    s.destroy()
    assert s.destroyed()
    assert not s._left.alive
    assert not s._right.alive
    assert not s._rand.alive


def test_coffer_destroy_twice_is_harmless():
    s = Coffer()
    s.destroy()
    s.destroy()
    assert s.destroyed()


@pytest.mark.parametrize("operation", ["init", "rekey", "view"])
def test_coffer_concurrent(operation):
    concurrency = 3
    deadline = time.monotonic() + 10
    errors = []
    view_lengths = []
    coffers = []
    threads = []

    def worker(coffer):
        while time.monotonic() < deadline:
            time.sleep(0.001)
            try:
                result = getattr(coffer, operation)()
            except CofferExpiredError:
                return
            except Exception as err:  # collected and asserted below
                errors.append(err)
                return
            if result is not None:
                view_lengths.append(len(result.data))
                result.destroy()

    def destroyer(coffer, delay):
        time.sleep(delay / 1000)
        coffer.destroy()

    for i in range(concurrency):
        coffer = Coffer()
        coffers.append(coffer)
        threads.append(threading.Thread(target=worker, args=(coffer,)))
        threads.append(threading.Thread(target=destroyer, args=(coffer, i)))

    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert all(length == 32 for length in view_lengths)
    destroyed = [coffer.destroyed() for coffer in coffers]
    assert destroyed == [True] * concurrency