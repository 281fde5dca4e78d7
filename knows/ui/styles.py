"""Qt stylesheet for the knows picker window."""

PICKER_STYLESHEET = """
QMainWindow {
    background-color: #1e1e1e;
}

QWidget {
    background-color: #1e1e1e;
    color: #d4d4d4;
    font-family: "Segoe UI", Arial, sans-serif;
    font-size: 13px;
}

QTableWidget {
    background-color: #252526;
    alternate-background-color: #2d2d2d;
    gridline-color: #3c3c3c;
    border: none;
    selection-background-color: #094771;
    selection-color: #ffffff;
}

QTableWidget::item {
    padding: 5px;
}

QHeaderView::section {
    background-color: #333333;
    color: #d4d4d4;
    padding: 8px;
    border: none;
    border-right: 1px solid #3c3c3c;
    font-weight: bold;
}

QPushButton {
    background-color: #0e639c;
    color: white;
    border: none;
    padding: 6px 12px;
    border-radius: 3px;
}

QPushButton:hover {
    background-color: #1177bb;
}

QPushButton:disabled {
    background-color: #3c3c3c;
    color: #808080;
}

QPushButton#killBtn {
    background-color: #c42b1c;
}

QPushButton#killBtn:hover {
    background-color: #d63a2c;
}

QLineEdit, QComboBox {
    background-color: #3c3c3c;
    border: 1px solid #555;
    border-radius: 3px;
    padding: 5px;
}

QCheckBox {
    spacing: 5px;
}

QMenu {
    background-color: #252526;
    border: 1px solid #454545;
}

QMenu::item {
    padding: 5px 20px;
}

QMenu::item:selected {
    background-color: #094771;
}

QLabel#statusLabel {
    color: #969696;
}
"""

# Row highlight for listeners that appeared since the previous refresh
NEW_ROW_COLOR = "#1e3a1e"
