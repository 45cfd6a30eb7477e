# tracking/tasks.py
import logging

from celery import shared_task
from django.core.management.base import CommandError

from .management.commands.prune_paths import Command as PruneCommand

logger = logging.getLogger(__name__)


@shared_task
def prune_path_history(hours=None):
    # a failed prune only costs disk space; the next run catches up
    cmd = PruneCommand()
    try:
        cmd.handle(hours=hours, archive=None)
    except CommandError:
        logger.exception("Path history prune failed")
        return False
    return True
