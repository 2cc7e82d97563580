import threading

import numpy as np

from carrot_control.scan_buffer import RangeScanBuffer

from conftest import NUM_BEAMS, make_scan


def test_empty_buffer_has_no_scan():
    buffer = RangeScanBuffer()

    assert buffer.latest() is None
    assert not buffer.available


def test_latest_scan_wins():
    buffer = RangeScanBuffer()
    first = make_scan()
    second = make_scan(np.full(NUM_BEAMS, 2.0))

    buffer.update(first)
    buffer.update(second)

    assert buffer.latest() is second
    assert buffer.available


def test_scans_from_other_frames_are_dropped():
    buffer = RangeScanBuffer()
    front = make_scan()
    buffer.update(front)

    buffer.update(make_scan(frame_id="/rear_laser"))

    assert buffer.latest() is front


def test_reset_forgets_scan():
    buffer = RangeScanBuffer()
    buffer.update(make_scan())
    buffer.reset()

    assert buffer.latest() is None


def test_readers_never_see_mixed_snapshots():
    buffer = RangeScanBuffer()
    buffer.update(make_scan(np.full(NUM_BEAMS, 1.0)))
    errors = []

    def writer():
        for value in range(1, 200):
            buffer.update(make_scan(np.full(NUM_BEAMS, float(value))))

    def reader():
        for _ in range(500):
            scan = buffer.latest()
            if scan is None or not np.all(scan.ranges == scan.ranges[0]):
                errors.append(scan)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
