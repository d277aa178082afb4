import logging
from typing import Optional

import notifiers.logging

from autorerun import config

NOTIFY_FORMAT = "autorerun [%(repo)s] %(levelname)s: %(message)s"


class RepositoryFilter(logging.Filter):
    """Tags every record with the repository the decision runs for."""

    def __init__(self, repo: Optional[str]):
        super().__init__()
        self.repo = repo or "-"

    def filter(self, record: logging.LogRecord) -> bool:
        record.repo = self.repo
        return True


def get_log_handlers(logger, repo: Optional[str] = None):
    # only decision failures are forwarded by default
    if config.TELEGRAM_TOKEN is None:
        return []
    handler = notifiers.logging.NotificationHandler(
        "telegram",
        defaults={
            "token": config.TELEGRAM_TOKEN,
            "chat_id": config.TELEGRAM_CHAT_ID,
        },
    )
    handler.setLevel(config.NOTIFY_LOGGING)
    handler.addFilter(RepositoryFilter(repo))
    handler.setFormatter(logging.Formatter(NOTIFY_FORMAT))
    logger.addHandler(handler)
    return [handler]
