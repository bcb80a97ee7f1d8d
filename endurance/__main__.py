"""Allow running Endurance as a module: python -m endurance."""

import logging
import sys

from PyQt6.QtWidgets import QApplication

from .database.db import init_db


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()

    app = QApplication(sys.argv)
    app.setApplicationName("Endurance")
    app.setOrganizationName("Endurance")
    app.setQuitOnLastWindowClosed(False)

    from .app import EnduranceApp, TrayController
    from .audio.sounds import SoundManager

    root = EnduranceApp(sound_manager=SoundManager())
    tray = TrayController(root)
    tray.icon.show()
    root.start()
    logging.getLogger(__name__).info("Endurance ready")

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
