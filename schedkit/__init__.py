"""schedkit: cron translation, background-job orchestration and scheduler client."""

__version__ = "0.1.0"
