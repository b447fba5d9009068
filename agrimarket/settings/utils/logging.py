import os
import sys
from pathlib import Path

# ─────────────────────────────────────────────────────
# Logs live in a "logs" directory at the project root
# ─────────────────────────────────────────────────────
LOG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "logs"

NEGOTIATION_LOG_PATH = LOG_DIR / "negotiation_performance.log"
NEGOTIATION_TASKS_LOG_PATH = LOG_DIR / "negotiation_tasks.log"
MONITORING_LOG_PATH = LOG_DIR / "monitoring.log"
ERROR_LOG_PATH = LOG_DIR / "error.log"
INFO_LOG_PATH = LOG_DIR / "info.log"
THROTTLE_LOG_PATH = LOG_DIR / "throttling.log"


def _rotating(path, level="INFO", max_bytes=1_000_000, backup_count=10):
    return {
        "level": level,
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "file",
        "filename": str(path),
        "maxBytes": max_bytes,
        "backupCount": backup_count,
        "delay": True,
    }


# ─────────────────────────────────────────────────────
# base logging config
# ─────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {"format": "%(name)-12s %(levelname)-8s %(message)s"},
        "file": {"format": "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"},
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": sys.stdout,
        },
        "throttle_file": _rotating(THROTTLE_LOG_PATH, level="WARNING"),
        "info_file": _rotating(INFO_LOG_PATH),
        "error_file": _rotating(ERROR_LOG_PATH, level="ERROR"),
        "negotiation_performance_file": _rotating(
            NEGOTIATION_LOG_PATH, max_bytes=10 * 1024 * 1024, backup_count=5
        ),
        "negotiation_tasks_file": _rotating(
            NEGOTIATION_TASKS_LOG_PATH, max_bytes=5 * 1024 * 1024, backup_count=5
        ),
        "monitoring_file": _rotating(
            MONITORING_LOG_PATH, max_bytes=5 * 1024 * 1024, backup_count=3
        ),
    },
    "loggers": {
        # root logger
        "": {
            "level": "INFO",
            "handlers": ["console", "info_file", "error_file"],
            "propagate": True,
        },
        "apps.core.throttle": {
            "handlers": ["throttle_file"],
            "level": "INFO",
            "propagate": True,
        },
        "negotiation_performance": {
            "handlers": ["negotiation_performance_file", "error_file"],
            "level": "INFO",
            "propagate": False,
        },
        "negotiation_tasks": {
            "handlers": ["console", "negotiation_tasks_file", "error_file"],
            "level": "INFO",
            "propagate": False,
        },
        "monitoring": {
            "handlers": ["monitoring_file"],
            "level": "INFO",
            "propagate": False,
        },
    },
}


def console_only(config):
    """Drop every file handler and point all loggers at the console."""
    for name in list(config["handlers"].keys()):
        if name.endswith("_file"):
            config["handlers"].pop(name, None)
    for logger in config["loggers"].values():
        logger["handlers"] = ["console"]
    return config


# If running under CI (e.g. GitHub Actions), drop all file handlers:
if os.environ.get("GITHUB_ACTIONS"):
    console_only(LOGGING)
else:
    os.makedirs(LOG_DIR, exist_ok=True)
