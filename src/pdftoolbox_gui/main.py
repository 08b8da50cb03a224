"""
Main entry point for the PDF Toolbox application.
"""

import sys

from PySide6.QtWidgets import QApplication

from pdftoolbox.config import ensure_app_directories, setup_qsettings
from pdftoolbox.config_manager import ConfigManager
from pdftoolbox.error_handler import init_logging, setup_error_handling

from .main_window import MainWindow


def main() -> int:
    """Main application entry point."""
    app = QApplication(sys.argv)
    setup_qsettings()
    ensure_app_directories()

    config_manager = ConfigManager()
    init_logging(config_manager.get("log_level"))
    setup_error_handling()

    window = MainWindow(config_manager)
    window.show()

    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
