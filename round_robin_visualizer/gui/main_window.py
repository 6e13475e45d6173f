"""
Main window for the Round Robin visualizer GUI.
"""

from typing import List, Optional
from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QLabel, QPushButton, QComboBox, QSpinBox, QListWidget, QListWidgetItem,
    QFileDialog, QScrollArea, QFrame, QSplitter
)
from PyQt6.QtCore import Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QPainter
from PyQt6.QtCharts import QChart, QChartView, QBarSeries, QBarSet, QBarCategoryAxis, QValueAxis

from ..backend.core import ProcessRecord, SimulationSnapshot, EngineState, build_batch
from ..backend.catalog import CatalogDatabase, CatalogError, KINDS
from ..backend.engine import RoundRobinEngine, EngineConfig
from ..backend.utils import format_card, service_counts


CARD_COLORS = {
    "ready": "#fff8e1",
    "running": "#e3f2fd",
    "done": "#e8f5e9",
}


class ProcessCard(QFrame):
    """Card showing one record."""

    def __init__(self, record: ProcessRecord, kind: str, quantum: int, parent=None):
        super().__init__(parent)
        self.setObjectName("processCard")
        self.setStyleSheet(
            f"QFrame#processCard {{ background:{CARD_COLORS[kind]}; border:1px solid #d7e0f0; border-radius:10px; }}"
        )
        layout = QVBoxLayout(self)
        layout.setContentsMargins(10, 8, 10, 8)
        layout.setSpacing(2)
        lines = format_card(record, quantum)
        title = QLabel(lines[0])
        title.setStyleSheet("font-weight:700;color:#0b2447;")
        layout.addWidget(title)
        for line in lines[1:]:
            label = QLabel(line)
            label.setStyleSheet("color:#4b5d7d;font-size:12px;")
            layout.addWidget(label)


class StatePanel(QFrame):
    """Scrollable column of process cards for one state."""

    def __init__(self, title: str, kind: str, parent=None):
        super().__init__(parent)
        self.kind = kind
        self.setObjectName("statePanel")
        outer = QVBoxLayout(self)
        outer.setContentsMargins(12, 12, 12, 12)
        self.title_label = QLabel(title)
        self.title_label.setStyleSheet("font-size:18px;font-weight:700;color:#0b2447;")
        outer.addWidget(self.title_label)

        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.container = QWidget()
        self.cards_layout = QVBoxLayout(self.container)
        self.cards_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        self.scroll.setWidget(self.container)
        outer.addWidget(self.scroll)
        self.title = title

    def set_records(self, records: List[ProcessRecord], quantum: int) -> None:
        while self.cards_layout.count():
            item = self.cards_layout.takeAt(0)
            if item.widget() is not None:
                item.widget().deleteLater()
        if not records:
            empty = QLabel("—")
            empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
            self.cards_layout.addWidget(empty)
        for record in records:
            self.cards_layout.addWidget(ProcessCard(record, self.kind, quantum))
        self.title_label.setText(f"{self.title} ({len(records)})")


class ServiceChart(QChartView):
    """Post-run bar chart of slices per finished record."""

    def __init__(self, parent=None):
        chart = QChart()
        chart.setTitle("Turnaround (ejecuciones)")
        chart.legend().setVisible(False)
        super().__init__(chart, parent)
        self._chart = chart
        self.setRenderHint(QPainter.RenderHint.Antialiasing)
        self.setMinimumHeight(260)

    def clear(self) -> None:
        self._chart.removeAllSeries()
        for axis in self._chart.axes():
            self._chart.removeAxis(axis)

    def show_counts(self, done: List[ProcessRecord]) -> None:
        self.clear()
        counts = service_counts(done)
        if not counts:
            return
        bar_set = QBarSet("Ejecuciones")
        bar_set.append([float(v) for v in counts.values()])
        series = QBarSeries()
        series.append(bar_set)
        series.setLabelsVisible(True)
        self._chart.addSeries(series)

        axis_x = QBarCategoryAxis()
        axis_x.append([name if len(name) <= 12 else name[:12] + "…" for name in counts.keys()])
        axis_y = QValueAxis()
        axis_y.setRange(0, max(counts.values()) + 1)
        axis_y.setLabelFormat("%d")
        self._chart.addAxis(axis_x, Qt.AlignmentFlag.AlignBottom)
        self._chart.addAxis(axis_y, Qt.AlignmentFlag.AlignLeft)
        series.attachAxis(axis_x)
        series.attachAxis(axis_y)


class MainWindow(QMainWindow):
    snapshot_ready = pyqtSignal(object)

    def __init__(self, config: Optional[EngineConfig] = None):
        super().__init__()
        self.setWindowTitle("Simulador Round Robin")
        self.setMinimumSize(1200, 800)
        self.engine = RoundRobinEngine(config or EngineConfig())
        self.db: Optional[CatalogDatabase] = None

        self.setStyleSheet("""
            QMainWindow { background: #eef3fb; }
            QPushButton {
                background-color: #1167b1;
                color: #ffffff;
                font-weight: 600;
                padding: 10px 18px;
                border-radius: 8px;
            }
            QPushButton:disabled { background-color: #c4d4ea; color: #eef2f9; }
            QComboBox, QSpinBox {
                padding: 6px 10px;
                border-radius: 6px;
                border: 1px solid #c7d2e4;
                background: #ffffff;
            }
            QFrame#controlFrame, QFrame#statePanel {
                background: #ffffff;
                border-radius: 16px;
                border: 1px solid #dbe3f0;
            }
        """)

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QVBoxLayout(central)
        main_layout.setContentsMargins(18, 18, 18, 18)
        main_layout.setSpacing(16)

        title_label = QLabel("Simulador Round Robin")
        title_label.setStyleSheet("font-size:28px;font-weight:800;color:#0b2447;")
        main_layout.addWidget(title_label)

        # Controls
        control_frame = QFrame()
        control_frame.setObjectName("controlFrame")
        control_layout = QHBoxLayout(control_frame)
        control_layout.setContentsMargins(24, 16, 24, 16)
        control_layout.setSpacing(24)

        self.open_button = QPushButton("Abrir .db")
        control_layout.addWidget(self.open_button)

        kind_box = QVBoxLayout()
        kind_box.addWidget(QLabel("Tipo"))
        self.kind_combo = QComboBox()
        self.kind_combo.addItems([k.upper() if k == "cpu" else k.capitalize() for k in KINDS])
        kind_box.addWidget(self.kind_combo)
        control_layout.addLayout(kind_box)

        quantum_box = QVBoxLayout()
        quantum_box.addWidget(QLabel("Quantum (ms)"))
        self.quantum_spin = QSpinBox()
        self.quantum_spin.setRange(1, 100000)
        self.quantum_spin.setValue(self.engine.quantum)
        quantum_box.addWidget(self.quantum_spin)
        control_layout.addLayout(quantum_box)

        self.sim_button = QPushButton("Iniciar Simulación")
        self.sim_button.setEnabled(False)
        control_layout.addWidget(self.sim_button)

        self.step_button = QPushButton("Paso")
        self.step_button.setEnabled(False)
        control_layout.addWidget(self.step_button)

        self.status_label = QLabel("Carga un archivo .db para comenzar")
        self.status_label.setStyleSheet("color:#4b5d7d;")
        control_layout.addWidget(self.status_label, stretch=1)
        main_layout.addWidget(control_frame)

        # Catalogs + state panels
        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.catalog_list = QListWidget()
        splitter.addWidget(self.catalog_list)
        self.ready_panel = StatePanel("Listos", "ready")
        self.running_panel = StatePanel("Ejecución", "running")
        self.done_panel = StatePanel("Terminados", "done")
        for panel in (self.ready_panel, self.running_panel, self.done_panel):
            splitter.addWidget(panel)
        splitter.setStretchFactor(0, 1)
        for i in (1, 2, 3):
            splitter.setStretchFactor(i, 2)
        main_layout.addWidget(splitter, stretch=3)

        self.chart_view = ServiceChart()
        self.chart_view.setVisible(False)
        main_layout.addWidget(self.chart_view, stretch=2)

        # Signals
        self.open_button.clicked.connect(self.open_database)
        self.kind_combo.currentIndexChanged.connect(self.refresh_catalogs)
        self.quantum_spin.valueChanged.connect(self.engine.set_quantum)
        self.catalog_list.itemClicked.connect(self.load_catalog)
        self.sim_button.clicked.connect(self.toggle_simulation)
        self.step_button.clicked.connect(self.step_simulation)
        self.snapshot_ready.connect(self.render_snapshot)
        self.engine.subscribe(self.snapshot_ready.emit)

        # Pacing timer: one engine tick per timeout
        self.sim_timer = QTimer()
        self.sim_timer.timeout.connect(self.simulation_step)
        self.tick_interval_ms = max(1, int(self.engine.config.tick_units * self.engine.config.time_scale * 1000))

        self.render_snapshot(self.engine.snapshot())

    @property
    def kind(self) -> str:
        return KINDS[self.kind_combo.currentIndex()]

    def open_database(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Abrir base de datos", "", "SQLite (*.db)")
        if not path:
            return
        try:
            self.db = CatalogDatabase(path)
        except CatalogError as e:
            self.status_label.setText(str(e))
            return
        self.sim_timer.stop()
        self.engine.load_batch([])
        self.refresh_catalogs()

    def refresh_catalogs(self) -> None:
        self.catalog_list.clear()
        self.sim_timer.stop()
        self.engine.load_batch([])
        if self.db is None:
            return
        try:
            catalogs = self.db.list_catalogs(self.kind)
        except CatalogError as e:
            self.status_label.setText(str(e))
            return
        for entry in catalogs:
            item = QListWidgetItem(f"{entry.name} ({entry.catalog_id})")
            item.setData(Qt.ItemDataRole.UserRole, entry.catalog_id)
            self.catalog_list.addItem(item)
        self.status_label.setText(f"{len(catalogs)} catálogos en '{self.kind}'")

    def load_catalog(self, item: QListWidgetItem) -> None:
        if self.db is None or self.engine.is_simulating:
            return
        catalog_id = item.data(Qt.ItemDataRole.UserRole)
        try:
            rows = self.db.load_rows(catalog_id, self.kind)
        except CatalogError as e:
            self.status_label.setText(str(e))
            return
        self.sim_timer.stop()
        self.engine.load_batch(build_batch(rows, self.engine.quantum))
        self.status_label.setText(f"Catálogo {catalog_id}: {len(rows)} procesos")

    def toggle_simulation(self) -> None:
        if self.engine.toggle() and self.engine.is_simulating:
            self.sim_timer.start(self.tick_interval_ms)

    def step_simulation(self) -> None:
        # One whole slice, leaving the engine paused in between
        if self.engine.is_simulating and not self.engine.is_paused:
            return
        if not self.engine.toggle():
            return
        self.engine.step_slice()
        if self.engine.is_simulating:
            self.engine.toggle()

    def simulation_step(self) -> None:
        if not self.engine.tick():
            self.sim_timer.stop()

    def render_snapshot(self, snap: SimulationSnapshot) -> None:
        self.ready_panel.set_records(list(snap.ready), snap.quantum)
        self.running_panel.set_records([snap.running] if snap.running else [], snap.quantum)
        self.done_panel.set_records(list(snap.done), snap.quantum)
        self.catalog_list.setEnabled(not snap.is_simulating)
        self.open_button.setEnabled(not snap.is_simulating)
        self.kind_combo.setEnabled(not snap.is_simulating)

        if snap.is_paused:
            self.sim_button.setText("Reanudar")
        elif snap.is_simulating:
            self.sim_button.setText("Pausar")
        else:
            self.sim_button.setText("Iniciar Simulación")
        self.sim_button.setEnabled(snap.is_simulating or bool(snap.ready))
        self.step_button.setEnabled(snap.is_paused or (not snap.is_simulating and bool(snap.ready)))

        if snap.state == EngineState.FINISHED:
            self.chart_view.show_counts(list(snap.done))
            self.chart_view.setVisible(True)
            self.status_label.setText(f"Simulación terminada en t={snap.clock}")
        elif snap.state == EngineState.IDLE:
            self.chart_view.clear()
            self.chart_view.setVisible(False)
