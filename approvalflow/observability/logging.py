"""
Loguru logging configuration for approvalflow.

Provides structured logging with the instance id attached to every record
emitted from inside a workflow, plus helpers to bind workflow and activity
context to the shared loguru logger.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# Records logged outside any instance still render {extra[instance_id]}
logger.configure(extra={"instance_id": "-"})


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_logs: bool = False,
    show_context: bool = True,
) -> None:
    """
    Configure approvalflow logging with loguru.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
        json_logs: If True, serialize records as JSON (useful for production)
        show_context: If True, include the instance id and bound fields

    Examples:
        # Console output only
        configure_logging()

        # Debug mode with file output
        configure_logging(level="DEBUG", log_file="approvalflow.log")

        # Production mode with JSON logs
        configure_logging(level="INFO", json_logs=True)
    """
    logger.remove()

    if show_context:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[instance_id]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level> | "
            "{extra}"
        )
    else:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=console_format,
        level=level,
        colorize=not json_logs,
        serialize=json_logs,
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{extra[instance_id]} | "
                "{name}:{function}:{line} | "
                "{message}"
            ),
            level=level,
            rotation="100 MB",
            retention="30 days",
            compression="gz",
            serialize=json_logs,
        )

    logger.debug(f"approvalflow logging configured at level {level}")


def bind_workflow_context(instance_id: str, workflow_name: str):
    """
    Bind workflow context to logger.

    Example:
        log = bind_workflow_context("HelloWorldWorkflowID", "HelloWorldWorkflow")
        log.info("Waiting for approval")
    """
    return logger.bind(instance_id=instance_id, workflow_name=workflow_name)


def bind_activity_context(instance_id: str, activity_name: str, attempt: int):
    """Bind activity invocation context to logger."""
    return logger.bind(instance_id=instance_id, activity_name=activity_name, attempt=attempt)
