import numpy as np
from PyQt5 import QtWidgets, QtCore
import pyqtgraph as pg

from ECHO.config import Config
from ECHO.src.core.types import ReconstructionResult
from ECHO.src.core.worker import ReconstructionWorker, WorkerState

HEX_BG_DARK = "#1e1e1e"
HEX_SUCCESS = "#2ea043"
HEX_DANGER = "#da3633"
HEX_WARNING = "#bb8800"
RUN_COLORS = ["#00aaff", "#ffaa00", "#00ff00", "#ff55ff", "#55ffff", "#ff5555"]


class LivePlotWindow(QtWidgets.QMainWindow):
    """Energy traces while the worker runs; observed vs reconstructed g(r) once it is done."""

    def __init__(self, worker: ReconstructionWorker, config: Config):
        super().__init__()
        self.worker = worker
        self.config = config

        # run index -> (iterations, energies)
        self.traces: dict[int, tuple[list[int], list[float]]] = {}
        self.curves: dict[int, pg.PlotDataItem] = {}
        self.dirty = False

        self.setWindowTitle("ECHO: Pattern Reconstruction")
        self.resize(900, 800)
        self.init_ui()
        self.init_connections()

    def init_ui(self):
        central = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(central)
        layout.setContentsMargins(10, 10, 10, 10)

        self.plot_container = pg.GraphicsLayoutWidget()
        self.plot_container.setBackground(HEX_BG_DARK)

        self.energy_plot = self.plot_container.addPlot(title="Energy")
        self.energy_plot.setLabel('left', "Energy")
        self.energy_plot.setLabel('bottom', "Iteration")
        self.energy_plot.showGrid(x=True, y=True, alpha=0.3)
        self.energy_plot.addLegend()

        self.plot_container.nextRow()
        self.pcf_plot = self.plot_container.addPlot(title="Pair Correlation Function")
        self.pcf_plot.setLabel('left', "g(r)")
        self.pcf_plot.setLabel('bottom', "r")
        self.pcf_plot.showGrid(x=True, y=True, alpha=0.3)
        self.pcf_plot.addLegend()
        self.pcf_plot.addItem(pg.InfiniteLine(pos=1.0, angle=0, pen=pg.mkPen('#888888', style=QtCore.Qt.DashLine)))

        layout.addWidget(self.plot_container, stretch=1)

        self.lbl_status = QtWidgets.QLabel("Ready")
        self.lbl_status.setStyleSheet(f"color: {HEX_SUCCESS}; font-weight: bold;")
        layout.addWidget(self.lbl_status)

        self.setCentralWidget(central)

        # Redraw on a timer; iteration signals arrive far faster than the screen refresh.
        self.redraw_timer = QtCore.QTimer(self)
        self.redraw_timer.setInterval(100)
        self.redraw_timer.timeout.connect(self.redraw)
        self.redraw_timer.start()

    def init_connections(self):
        self.worker.iteration_done.connect(self.on_iteration)
        self.worker.status_msg.connect(self.update_status)
        self.worker.state_changed.connect(self.on_state_changed)
        self.worker.reconstruction_finished.connect(self.on_finished)

    def on_iteration(self, run_index: int, iteration: int, energy: float):
        its, energies = self.traces.setdefault(run_index, ([], []))
        its.append(iteration)
        energies.append(energy)
        self.dirty = True

    def redraw(self):
        if not self.dirty:
            return
        for run_index, (its, energies) in self.traces.items():
            if run_index not in self.curves:
                color = RUN_COLORS[(run_index - 1) % len(RUN_COLORS)]
                self.curves[run_index] = self.energy_plot.plot(
                    pen=pg.mkPen(color, width=2), name=f"randomized_{run_index}"
                )
            self.curves[run_index].setData(np.asarray(its), np.asarray(energies))
        self.dirty = False

    def on_finished(self, result: ReconstructionResult):
        self.redraw()
        self.pcf_plot.plot(result.r, result.observed_curves.pcf, pen=pg.mkPen('w', width=2), name="observed")
        for k, res in enumerate(result.randomized.values()):
            color = RUN_COLORS[k % len(RUN_COLORS)]
            name = "reconstructed" if k == 0 else None
            self.pcf_plot.plot(res.curves.r, res.curves.pcf, pen=pg.mkPen(color, width=1), name=name)

    def on_state_changed(self, state: str):
        if state == WorkerState.ERROR:
            self.lbl_status.setStyleSheet(f"color: {HEX_DANGER}; font-weight: bold;")
        elif state == WorkerState.RUNNING:
            self.lbl_status.setStyleSheet(f"color: {HEX_WARNING}; font-weight: bold;")
        else:
            self.lbl_status.setStyleSheet(f"color: {HEX_SUCCESS}; font-weight: bold;")

    def update_status(self, msg: str):
        self.lbl_status.setText(msg)

    def closeEvent(self, event):
        self.redraw_timer.stop()
        self.worker.wait()
        event.accept()
