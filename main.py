"""PMT Cascade Simulator — Entry Point.

Runs one exact cascade on the default tube in a background worker and
logs the outcome.
"""
import logging
import sys

from pmtsim.application import configure_logging, create_application
from pmtsim.core.layout_adapter import build_cascade_config
from pmtsim.models.layout import default_layout
from pmtsim.workers.cascade_worker import CascadeWorker

logger = logging.getLogger("pmtsim")


def main():
    configure_logging(logging.INFO)
    app = create_application(sys.argv)

    layout = default_layout()
    config = build_cascade_config(layout, trace=True)

    worker = CascadeWorker()
    worker.setup(config)

    def on_result(result):
        logger.info(
            "Outcome %s, gain %.4g, %d particle(s), %d dynode strike(s)",
            result.outcome.value, result.gain, result.generations,
            len(result.collisions),
        )
        app.quit()

    def on_error(message):
        logger.error("Cascade failed: %s", message)
        app.exit(1)

    worker.result_ready.connect(on_result)
    worker.error_occurred.connect(on_error)
    worker.start()
    code = app.exec()
    worker.wait()
    sys.exit(code)


if __name__ == "__main__":
    main()
