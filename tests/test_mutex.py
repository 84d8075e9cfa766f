import threading

from bafikit.mutex import Mutex


def test_lock_gives_value_and_releases():
    m = Mutex([1, 2])
    with m.lock() as guard:
        assert m.locked()
        assert guard.value == [1, 2]
        guard.value.append(3)
    assert not m.locked()
    assert m.into_inner() == [1, 2, 3]


def test_guard_can_replace_value():
    m = Mutex(5)
    with m.lock() as guard:
        guard.value = 10
    assert m.into_inner() == 10


def test_release_is_idempotent():
    m = Mutex(0)
    guard = m.lock()
    guard.release()
    guard.release()
    assert not m.locked()
    with m.lock() as again:
        assert again.value == 0


def test_force_unlock():
    m = Mutex("x")
    m.lock()
    assert m.locked()
    m.force_unlock()
    assert not m.locked()
    m.force_unlock()
    assert not m.locked()


def test_concurrent_increments():
    m = Mutex(0)

    def work():
        for _ in range(1000):
            with m.lock() as guard:
                guard.value += 1

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert m.into_inner() == 4000