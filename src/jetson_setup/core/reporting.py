"""Progress reporting interface used by the setup engine."""

import logging


logger = logging.getLogger(__name__)


class Reporter:
    """Receives operator-facing progress; the default only logs."""

    def step(self, title: str) -> None:
        logger.info(f"== {title}")

    def info(self, message: str) -> None:
        logger.info(message)

    def success(self, message: str) -> None:
        logger.info(message)

    def warning(self, message: str) -> None:
        logger.warning(message)

    def start_progress(self, description: str) -> None:
        logger.info(description)

    def update_progress(self, percent: int) -> None:
        logger.debug(f"progress {percent}%")

    def finish_progress(self) -> None:
        pass
