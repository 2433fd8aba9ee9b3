from loguru import logger
from plyer import notification

from yakstack.settings import Settings


class DesktopNotifier:
    """Shows reminder texts as desktop notifications."""

    def __init__(self, settings: Settings) -> None:
        self.title = settings.notification_title
        self.app_name = settings.app_name
        self.timeout = settings.notification_timeout

    def notify(self, message: str) -> None:
        notification.notify(
            title=self.title,
            message=message,
            app_name=self.app_name,
            timeout=self.timeout,
        )
        logger.info("Notification shown", title=self.title, message=message)
