"""Background worker thread running reconstructions for the live plot window."""

from __future__ import annotations

import logging
from typing import Optional

from PyQt5 import QtCore

from ECHO.config import Config
from ECHO.src.core.algorithms import ReconstructionOrchestrator
from ECHO.src.core.types import PointPattern, Window

logger = logging.getLogger(__name__)


class WorkerState:
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    ERROR = "ERROR"


class ReconstructionWorker(QtCore.QThread):
    iteration_done = QtCore.pyqtSignal(int, int, float)
    status_msg = QtCore.pyqtSignal(str)
    state_changed = QtCore.pyqtSignal(str)
    reconstruction_finished = QtCore.pyqtSignal(object)

    def __init__(self, config: Config, pattern: PointPattern, window: Optional[Window] = None):
        super().__init__()
        self.config = config
        self.pattern = pattern
        self.window = window
        self.state = WorkerState.IDLE
        self.result = None

    def _set_state(self, state: str) -> None:
        if self.state != state:
            self.state = state
            self.state_changed.emit(state)

    def _emit_iteration(self, run_index: int, iteration: int, energy: float) -> None:
        self.iteration_done.emit(run_index, iteration, float(energy))

    def run(self) -> None:
        orchestrator = ReconstructionOrchestrator(self.config, observer=self._emit_iteration)

        self._set_state(WorkerState.RUNNING)
        self.status_msg.emit(f"Reconstructing {self.config.N_RANDOM} pattern(s)...")
        try:
            self.result = orchestrator.run(self.pattern, self.window)
        except Exception:
            self._set_state(WorkerState.ERROR)
            self.status_msg.emit("Reconstruction failed. Check logs for details.")
            logger.exception("Reconstruction worker crashed")
            return

        self._set_state(WorkerState.FINISHED)
        self.status_msg.emit("Reconstruction DONE.")
        self.reconstruction_finished.emit(self.result)
