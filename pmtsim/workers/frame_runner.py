"""Frame runner — timer-driven stepping of the interactive engine.

A QTimer on the owning thread's event loop calls FrameEngine.update once
per tick, so frames never overlap. stop() only withholds the next tick;
the particle list keeps the state of the last completed frame and
start() resumes from it. The runner also counts emitted photons and
photoelectrons so ``statistics()`` can summarize the run.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from pmtsim.constants import FRAME_INTERVAL_MS
from pmtsim.core.frame_engine import AnodeHit, FrameEngine, FrameUpdate, RunStatistics
from pmtsim.models.particle import Particle

logger = logging.getLogger(__name__)


class FrameRunner(QObject):
    """Drives a FrameEngine from a QTimer.

    Usage:
        runner = FrameRunner(FrameEngine(layout))
        runner.add_particle(emit_photon(layout.photocathode))
        runner.frame_done.connect(on_frame)
        runner.start()
    """

    frame_done = pyqtSignal(object)       # FrameUpdate
    error_occurred = pyqtSignal(str)

    def __init__(
        self,
        engine: FrameEngine,
        interval_ms: int = FRAME_INTERVAL_MS,
        parent=None,
    ):
        super().__init__(parent)
        self._engine = engine
        self.particles: list[Particle] = []
        self.anode_hits: list[AnodeHit] = []
        self.photons_emitted = 0
        self.photoelectrons = 0
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_tick)

    @property
    def engine(self) -> FrameEngine:
        return self._engine

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    def add_particle(self, particle: Particle) -> None:
        self.particles.append(particle)
        self._count(particle)

    def statistics(self) -> RunStatistics:
        """Counts, efficiency, transit time and gain of the run so far."""
        return RunStatistics.from_hits(
            self.photons_emitted, self.photoelectrons, self.anode_hits,
            active_particles=len(self.particles),
        )

    def step(self) -> FrameUpdate:
        """Run exactly one frame synchronously."""
        update = self._engine.update(self.particles)
        self.anode_hits.extend(update.anode_hits)
        for particle in update.particles_added:
            self._count(particle)
        self.frame_done.emit(update)
        return update

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def reset(self) -> None:
        """Stop and clear all particles, collected hits and counters."""
        self.stop()
        self.particles.clear()
        self.anode_hits.clear()
        self.photons_emitted = 0
        self.photoelectrons = 0

    def _count(self, particle: Particle) -> None:
        if not particle.is_electron:
            self.photons_emitted += 1
        elif particle.generation == 0:
            self.photoelectrons += 1

    def _on_tick(self) -> None:
        try:
            self.step()
        except Exception as e:
            self.stop()
            logger.exception("Frame update failed")
            self.error_occurred.emit(str(e))
