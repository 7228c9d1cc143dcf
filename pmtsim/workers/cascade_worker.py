"""Cascade worker — background thread for one exact cascade run.

Runs CascadeSimulator.run off the caller's thread so an event loop (UI or
frame runner) keeps ticking while a long cascade is integrated.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from PyQt6.QtCore import QThread, pyqtSignal

from pmtsim.core.cascade_simulator import CascadeSimulator

if TYPE_CHECKING:
    from pmtsim.models.cascade import CascadeConfig


class CascadeWorker(QThread):
    """Background thread for the exact cascade engine.

    Emits progress (particles finished so far), result_ready on success,
    error_occurred on failure.

    Usage:
        worker = CascadeWorker()
        worker.setup(config)
        worker.result_ready.connect(on_result)
        worker.error_occurred.connect(on_error)
        worker.start()
    """

    progress = pyqtSignal(int)
    result_ready = pyqtSignal(object)     # CascadeResult
    error_occurred = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._config: CascadeConfig | None = None
        self._cancelled = False

    def setup(self, config: CascadeConfig) -> None:
        """Set the cascade configuration. Must be called before start()."""
        self._config = config
        self._cancelled = False

    def cancel(self) -> None:
        """Request cancellation of the running cascade."""
        self._cancelled = True

    def run(self) -> None:
        """Execute the cascade in the background thread."""
        try:
            if self._config is None:
                self.error_occurred.emit("Cascade configuration not set.")
                return

            def _progress_callback(done: int) -> None:
                if self._cancelled:
                    raise InterruptedError("Cascade cancelled.")
                self.progress.emit(done)

            simulator = CascadeSimulator(
                self._config, progress_callback=_progress_callback,
            )
            result = simulator.run()

            if self._cancelled:
                return

            self.result_ready.emit(result)

        except InterruptedError:
            pass  # cancelled silently
        except Exception as e:
            self.error_occurred.emit(str(e))
