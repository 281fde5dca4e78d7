"""Interactive window to pick a listening process and inspect or kill it."""

import sys
from typing import Optional

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QAction, QColor
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
    QTableWidget, QTableWidgetItem, QPushButton, QLabel, QHeaderView,
    QMessageBox, QLineEdit, QCheckBox, QComboBox, QMenu
)

from .grouping import group_by_port, load_snapshot, matches_filter, port_choice_label
from .styles import PICKER_STYLESHEET, NEW_ROW_COLOR
from ..config import APP_NAME, APP_VERSION
from ..core.models import ListenerRecord, format_listener
from ..core.process_manager import ProcessManager
from ..core.repository import ListenerRepository
from ..errors import KnowsError
from ..utils.logging_config import get_logger

logger = get_logger('picker_window')

ALL_PORTS = None


class PickerWindow(QMainWindow):
    """Table of listeners with per-row kill and inspect actions."""

    COLUMNS = ['Port', 'Protocol', 'PID', 'Address', 'Command', 'Action']

    def __init__(self, repository: ListenerRepository, process_manager: ProcessManager,
                 interval_ms: int):
        super().__init__()
        self.repository = repository
        self.process_manager = process_manager
        self.interval_ms = interval_ms
        self.records: list[ListenerRecord] = []
        self._seen_keys: set[str] = set()
        self._new_keys: set[str] = set()

        self.setWindowTitle(f"{APP_NAME} - listening processes")
        self.setMinimumSize(900, 500)
        self.resize(1100, 600)

        self._setup_ui()
        self.setStyleSheet(PICKER_STYLESHEET)

        self.refresh()

        self.timer = QTimer(self)
        self.timer.timeout.connect(self.refresh)
        self.timer.start(self.interval_ms)

    def _setup_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)
        layout.setContentsMargins(10, 10, 10, 10)

        header = QHBoxLayout()

        self.port_combo = QComboBox()
        self.port_combo.setMinimumWidth(200)
        self.port_combo.currentIndexChanged.connect(self._populate_table)
        header.addWidget(self.port_combo)

        self.filter_input = QLineEdit()
        self.filter_input.setPlaceholderText("Filter by port, PID, address or command...")
        self.filter_input.textChanged.connect(self._populate_table)
        header.addWidget(self.filter_input)

        self.auto_refresh_cb = QCheckBox("Auto-refresh")
        self.auto_refresh_cb.setChecked(True)
        self.auto_refresh_cb.toggled.connect(self._toggle_auto_refresh)
        header.addWidget(self.auto_refresh_cb)

        self.refresh_btn = QPushButton("Refresh Now")
        self.refresh_btn.clicked.connect(self.refresh)
        header.addWidget(self.refresh_btn)

        layout.addLayout(header)

        self.table = QTableWidget()
        self.table.setColumnCount(len(self.COLUMNS))
        self.table.setHorizontalHeaderLabels(self.COLUMNS)
        self.table.setAlternatingRowColors(True)
        self.table.setSelectionBehavior(QTableWidget.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QTableWidget.SelectionMode.SingleSelection)
        self.table.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.table.customContextMenuRequested.connect(self._show_context_menu)
        self.table.cellDoubleClicked.connect(lambda row, _col: self._inspect(self._record_at(row)))

        header_view = self.table.horizontalHeader()
        header_view.setSectionResizeMode(0, QHeaderView.ResizeMode.Fixed)  # Port
        header_view.setSectionResizeMode(1, QHeaderView.ResizeMode.Fixed)  # Protocol
        header_view.setSectionResizeMode(2, QHeaderView.ResizeMode.Fixed)  # PID
        header_view.setSectionResizeMode(3, QHeaderView.ResizeMode.Interactive)  # Address
        header_view.setSectionResizeMode(4, QHeaderView.ResizeMode.Stretch)  # Command
        header_view.setSectionResizeMode(5, QHeaderView.ResizeMode.Fixed)  # Action

        self.table.setColumnWidth(0, 70)
        self.table.setColumnWidth(1, 70)
        self.table.setColumnWidth(2, 70)
        self.table.setColumnWidth(3, 160)
        self.table.setColumnWidth(5, 80)

        layout.addWidget(self.table)

        self.status_label = QLabel()
        self.status_label.setObjectName("statusLabel")
        layout.addWidget(self.status_label)

    def refresh(self):
        """Re-query listeners and redraw."""
        self.refresh_btn.setEnabled(False)
        self.refresh_btn.setText("Refreshing...")
        self.status_label.setText("Scanning ports...")
        QApplication.processEvents()

        snapshot = load_snapshot(self.repository, self._seen_keys)
        self.refresh_btn.setText("Refresh Now")
        self.refresh_btn.setEnabled(True)
        if snapshot.error:
            self.status_label.setText(f"Refresh failed: {snapshot.error}")
            return

        self.records = snapshot.records
        self._seen_keys = snapshot.seen_keys
        self._new_keys = snapshot.new_keys
        self._update_port_choices()
        self._populate_table()

    def _update_port_choices(self):
        selected = self.port_combo.currentData()
        groups = group_by_port(self.records)

        self.port_combo.blockSignals(True)
        self.port_combo.clear()
        self.port_combo.addItem(f"All ports ({len(self.records)} listener(s))", ALL_PORTS)
        for port, records in groups.items():
            self.port_combo.addItem(port_choice_label(port, records), port)
        index = self.port_combo.findData(selected)
        self.port_combo.setCurrentIndex(max(0, index))
        self.port_combo.blockSignals(False)

    def _visible_records(self) -> list[ListenerRecord]:
        port = self.port_combo.currentData()
        text = self.filter_input.text()
        return [
            r for r in self.records
            if (port is ALL_PORTS or r.port == port) and matches_filter(r, text)
        ]

    def _populate_table(self):
        visible = self._visible_records()
        self.table.setRowCount(0)

        for record in visible:
            row = self.table.rowCount()
            self.table.insertRow(row)

            port_item = QTableWidgetItem(str(record.port))
            port_item.setData(Qt.ItemDataRole.UserRole, record)
            cells = [
                port_item,
                QTableWidgetItem(record.protocol.value),
                QTableWidgetItem(str(record.pid)),
                QTableWidgetItem(record.address),
                QTableWidgetItem(record.command or "<unknown>"),
            ]
            cells[4].setToolTip(format_listener(record))
            for col, item in enumerate(cells):
                if record.key in self._new_keys:
                    item.setBackground(QColor(NEW_ROW_COLOR))
                self.table.setItem(row, col, item)

            kill_btn = QPushButton("Kill")
            kill_btn.setObjectName("killBtn")
            kill_btn.setFixedWidth(60)
            kill_btn.clicked.connect(lambda checked, r=record: self._kill(r))
            self.table.setCellWidget(row, 5, kill_btn)

        if len(visible) == len(self.records):
            self.status_label.setText(f"{len(self.records)} listening process(es)")
        else:
            self.status_label.setText(f"Showing {len(visible)} of {len(self.records)} listeners (filtered)")

    def _record_at(self, row: int) -> Optional[ListenerRecord]:
        item = self.table.item(row, 0)
        return item.data(Qt.ItemDataRole.UserRole) if item else None

    def _toggle_auto_refresh(self, enabled: bool):
        if enabled:
            self.timer.start(self.interval_ms)
        else:
            self.timer.stop()

    def _inspect(self, record: Optional[ListenerRecord]):
        if record is None:
            return
        QMessageBox.information(self, "Inspect", format_listener(record))

    def _kill(self, record: ListenerRecord):
        """Kill a process after confirmation."""
        reply = QMessageBox.question(
            self,
            "Confirm Kill",
            f"Terminate {format_listener(record)}?\n\nThis will free up port {record.port}.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No
        )
        if reply != QMessageBox.StandardButton.Yes:
            return

        try:
            self.process_manager.terminate_by_pid(record.pid)
        except KnowsError as e:
            QMessageBox.warning(self, "Failed", f"Failed to terminate {format_listener(record)} -> {e}")
            return
        QMessageBox.information(self, "Success", f"Terminated {format_listener(record)}")
        self.refresh()

    def _show_context_menu(self, pos):
        item = self.table.itemAt(pos)
        if not item:
            return
        record = self._record_at(item.row())
        if record is None:
            return

        menu = QMenu(self)

        inspect_action = QAction("Inspect", self)
        inspect_action.triggered.connect(lambda: self._inspect(record))
        menu.addAction(inspect_action)

        kill_action = QAction(f"Kill PID {record.pid}", self)
        kill_action.triggered.connect(lambda: self._kill(record))
        menu.addAction(kill_action)

        menu.addSeparator()

        copy_port = QAction(f"Copy Port: {record.port}", self)
        copy_port.triggered.connect(lambda: QApplication.clipboard().setText(str(record.port)))
        menu.addAction(copy_port)

        copy_pid = QAction(f"Copy PID: {record.pid}", self)
        copy_pid.triggered.connect(lambda: QApplication.clipboard().setText(str(record.pid)))
        menu.addAction(copy_pid)

        menu.exec(self.table.viewport().mapToGlobal(pos))


def run_picker(repository: ListenerRepository, process_manager: ProcessManager,
               interval_ms: int) -> int:
    """Open the picker window and block until it is closed."""
    QApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication.instance() or QApplication(sys.argv[:1])
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)

    window = PickerWindow(repository, process_manager, interval_ms)
    window.show()

    logger.info("Picker window displayed, entering event loop")
    exit_code = app.exec()
    logger.info(f"Picker window closed (exit code: {exit_code})")
    return exit_code
