from __future__ import annotations

import math

from pytest import approx

from slimetrail.sim.core.config import AttractorConfig
from slimetrail.sim.systems.attractor import AttractorDriver


def test_center_follows_lissajous_path():
    config = AttractorConfig(time_step=0.25, amplitude_x=0.5, amplitude_y=0.4)
    driver = AttractorDriver(config, width=200.0, height=100.0)

    for step in range(1, 5):
        center = driver.advance()
        t = 0.25 * step
        assert driver.time == approx(t)
        assert center.x == approx(100.0 + math.sin(t) * 50.0)
        assert center.y == approx(50.0 + math.cos(t * 0.5) * 20.0)


def test_explicit_dt_overrides_step():
    driver = AttractorDriver(AttractorConfig(time_step=0.01), width=100.0, height=100.0)
    driver.advance(1.0)

    assert driver.time == approx(1.0)


def test_identical_drivers_agree():
    config = AttractorConfig()
    a = AttractorDriver(config, 320.0, 240.0)
    b = AttractorDriver(config, 320.0, 240.0)

    for _ in range(100):
        ca = a.advance()
        cb = b.advance()
        assert (ca.x, ca.y) == (cb.x, cb.y)


def test_disabled_driver_returns_constant_origin():
    driver = AttractorDriver(AttractorConfig(enabled=False), width=80.0, height=60.0)

    for _ in range(5):
        center = driver.advance()
        assert (center.x, center.y) == (40.0, 30.0)
    assert driver.time == 0.0
    assert not driver.enabled


def test_reset_returns_to_start():
    driver = AttractorDriver(AttractorConfig(), width=80.0, height=60.0)
    start = driver.center
    for _ in range(10):
        driver.advance()
    driver.reset()

    assert driver.time == 0.0
    assert (driver.center.x, driver.center.y) == (start.x, start.y)
