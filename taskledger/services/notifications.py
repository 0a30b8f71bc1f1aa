from __future__ import annotations

import logging
from typing import Protocol

from taskledger.domain.entities import TaskEntity

logger = logging.getLogger(__name__)


class ReviewNotifier(Protocol):
    def review_requested(self, task: TaskEntity) -> None: ...


class LoggingReviewNotifier:
    """Announces finished work sessions in the application log."""

    def __init__(self, recipient: str | None = None) -> None:
        self._recipient = recipient

    def review_requested(self, task: TaskEntity) -> None:
        logger.info(
            "Review requested for task %s (%s) by %s; notify=%s",
            task.id,
            task.name,
            task.assigned_to,
            self._recipient or "-",
        )
