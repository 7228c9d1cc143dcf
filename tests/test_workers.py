"""Qt worker tests — CascadeWorker and FrameRunner.

The worker's run() is called directly so signals are delivered
synchronously on the test thread.
"""

import sys

import numpy as np
import pytest
from PyQt6.QtCore import QCoreApplication

from pmtsim.core.frame_engine import FrameEngine, FrameEngineConfig, RunStatistics
from pmtsim.core.units import ev_to_speed
from pmtsim.models.cascade import CascadeConfig, CascadeOutcome, CascadeResult, ShapeRegion
from pmtsim.models.component import Component, ComponentType
from pmtsim.models.particle import Particle
from pmtsim.models.shapes import RectangleShape
from pmtsim.workers.cascade_worker import CascadeWorker
from pmtsim.workers.frame_runner import FrameRunner

# QCoreApplication instance needed for QObject / signals / timers
_app = QCoreApplication.instance() or QCoreApplication(sys.argv)


def _anode_config(**kwargs):
    return CascadeConfig(
        x0=(0.0, 0.0),
        v0=(ev_to_speed(100.0), 0.0),
        anodes=[ShapeRegion(RectangleShape(1.0, -5.0, 1.0, 10.0))],
        dt=1e-11,
        **kwargs,
    )


class TestCascadeWorker:
    def test_result_emitted(self):
        worker = CascadeWorker()
        results, errors = [], []
        worker.result_ready.connect(results.append)
        worker.error_occurred.connect(errors.append)
        worker.setup(_anode_config())
        worker.run()
        assert errors == []
        assert len(results) == 1
        assert isinstance(results[0], CascadeResult)
        assert results[0].outcome is CascadeOutcome.HIT_ANODE

    def test_missing_config(self):
        worker = CascadeWorker()
        errors = []
        worker.error_occurred.connect(errors.append)
        worker.run()
        assert errors == ["Cascade configuration not set."]

    def test_cancel_suppresses_result(self):
        worker = CascadeWorker()
        results, errors = [], []
        worker.result_ready.connect(results.append)
        worker.error_occurred.connect(errors.append)
        # Long enough to reach the periodic progress callback
        worker.setup(CascadeConfig(x0=(0.0, 0.0), v0=(1.0, 0.0), dt=1e-11,
                                   max_steps=20_000))
        worker.cancel()
        worker.run()
        assert results == []
        assert errors == []

    def test_progress_reported(self):
        worker = CascadeWorker()
        progress = []
        worker.progress.connect(progress.append)
        worker.setup(CascadeConfig(x0=(0.0, 0.0), v0=(1.0, 0.0), dt=1e-11,
                                   max_steps=20_000))
        worker.run()
        assert progress
        assert all(isinstance(p, int) for p in progress)


class TestFrameRunner:
    @pytest.fixture
    def runner(self):
        anode = Component(ComponentType.ANODE, x=350, y=200)
        engine = FrameEngine([anode], FrameEngineConfig(
            enable_field=False, rng=np.random.default_rng(0),
        ))
        return FrameRunner(engine, interval_ms=5)

    def test_step_emits_frame(self, runner):
        frames = []
        runner.frame_done.connect(frames.append)
        runner.add_particle(Particle.electron(339, 200, 20, 0))
        update = runner.step()
        assert frames == [update]
        assert len(runner.anode_hits) == 1
        assert runner.particles == []
        assert runner.engine.frame == 1

    def test_start_stop(self, runner):
        assert not runner.is_running
        runner.start()
        assert runner.is_running
        runner.stop()
        assert not runner.is_running

    def test_stop_keeps_state(self, runner):
        e = Particle.electron(100, 100, 10, 0)
        runner.add_particle(e)
        runner.step()
        runner.stop()
        assert runner.particles == [e]
        assert e.x == pytest.approx(101.0)

    def test_reset(self, runner):
        runner.add_particle(Particle.electron(339, 200, 20, 0))
        runner.add_particle(Particle.electron(100, 100))
        runner.step()
        runner.start()
        runner.reset()
        assert not runner.is_running
        assert runner.particles == []
        assert runner.anode_hits == []

    def test_tick_error_stops_runner(self, runner):
        errors = []
        runner.error_occurred.connect(errors.append)
        runner.particles.append(None)
        runner.start()
        runner._on_tick()
        assert not runner.is_running
        assert len(errors) == 1

    def test_statistics(self):
        cathode = Component(ComponentType.PHOTOCATHODE, x=100, y=200)
        anode = Component(ComponentType.ANODE, x=130, y=200)
        runner = FrameRunner(FrameEngine([cathode, anode], FrameEngineConfig(
            enable_field=False, photoelectron_velocity=(20.0, 0.0),
        )))
        runner.add_particle(Particle.photon(85, 200, 100, 0))
        # Misses the photocathode and stays in flight
        runner.add_particle(Particle.photon(85, 400, 100, 0))
        for _ in range(30):
            runner.step()
        stats = runner.statistics()
        assert stats.photons_emitted == 2
        assert stats.photoelectrons == 1
        assert stats.electrons_detected == 1
        assert stats.detection_efficiency == pytest.approx(50.0)
        assert stats.mean_transit_time == pytest.approx(1.3)
        assert stats.gain == pytest.approx(1.0)
        assert stats.active_particles == 1

    def test_reset_clears_statistics(self, runner):
        runner.add_particle(Particle.photon(100, 100))
        runner.add_particle(Particle.electron(339, 200, 20, 0))
        runner.step()
        runner.reset()
        assert runner.statistics() == RunStatistics()
