"""Application factory — Qt core application and logging setup."""

import logging

from PyQt6.QtCore import QCoreApplication, QtMsgType, qInstallMessageHandler

from pmtsim.constants import APP_NAME, APP_ORGANIZATION, APP_VERSION

_qt_logger = logging.getLogger("pmtsim.qt")

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def _qt_message_handler(msg_type, context, message):
    """Route Qt's own diagnostics into the ``pmtsim.qt`` logger."""
    _qt_logger.log(_QT_LEVELS.get(msg_type, logging.WARNING), message)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Basic console logging for the ``pmtsim`` loggers."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def create_application(argv: list[str]) -> QCoreApplication:
    """Create (or reuse) the Qt application instance.

    A QCoreApplication is enough for the event loop that drives the
    cascade worker and frame runner; no widgets are involved.
    """
    qInstallMessageHandler(_qt_message_handler)

    app = QCoreApplication.instance() or QCoreApplication(argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    app.setOrganizationName(APP_ORGANIZATION)
    return app
