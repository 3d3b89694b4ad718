"""arq worker settings module.

Import path for arq CLI: arq squadcheck.workers.settings.WorkerSettings
"""

from __future__ import annotations

from squadcheck.workers.evaluation_worker import WorkerSettings

__all__ = ["WorkerSettings"]
