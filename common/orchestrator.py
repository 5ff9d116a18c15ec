# common/orchestrator.py
# -*- coding: utf-8 -*-
"""
Sequential task runner used by the bootstrap pipeline.

Tasks run strictly in the order they were added. Each task receives the
shared ``context`` dict and the ``app_settings`` object as keyword
arguments, so a later task can consume what an earlier one produced. A
failing fatal task terminates the process with ``fatal_exit_code``; a
failing non-fatal task is logged and recorded, and the run continues.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class Task:
    name: str
    func: Callable[..., Any]
    args: List[Any] = field(default_factory=list)
    kwargs: Dict[str, Any] = field(default_factory=dict)
    fatal: bool = True


@dataclass
class TaskOutcome:
    name: str
    succeeded: bool
    error: Optional[BaseException] = None


class Orchestrator:
    """Runs a series of named tasks that share one context."""

    def __init__(
        self,
        app_settings: Any,
        orchestrator_logger: Optional[logging.Logger] = None,
        fatal_exit_code: int = 1,
    ):
        """
        Initializes the Orchestrator.

        Args:
            app_settings: The application settings object.
            orchestrator_logger: An optional logger instance.
            fatal_exit_code: Process exit status used when a fatal task fails.
        """
        self.app_settings = app_settings
        self.logger = orchestrator_logger or logging.getLogger(__name__)
        self.fatal_exit_code = fatal_exit_code
        self.tasks: List[Task] = []
        self.outcomes: List[TaskOutcome] = []
        # Shared context for tasks to pass state between each other
        self.context: Dict[str, Any] = {}

    def add_task(
        self,
        name: str,
        func: Callable[..., Any],
        args: Optional[List[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        fatal: bool = True,
    ) -> None:
        """
        Adds a task to the execution list.

        Args:
            name: A human-readable name for the task.
            func: The function to execute for this task.
            args: Positional arguments to pass to the function.
            kwargs: Keyword arguments to pass to the function.
            fatal: If True, a failure in this task halts the whole process.
        """
        self.tasks.append(
            Task(
                name=name,
                func=func,
                args=list(args or []),
                kwargs=dict(kwargs or {}),
                fatal=fatal,
            )
        )
        self.logger.debug(f"Task '{name}' added to the queue.")

    def run(self) -> bool:
        """
        Executes all added tasks in sequence.

        Returns:
            True if every task succeeded, False if a non-fatal task failed.

        Raises:
            SystemExit: When a fatal task fails.
        """
        self.logger.info("Bootstrap started.")
        all_succeeded = True
        for i, task in enumerate(self.tasks):
            self.logger.info(f"--- Stage {i + 1}: Running task '{task.name}' ---")

            call_kwargs = dict(task.kwargs)
            call_kwargs["context"] = self.context
            call_kwargs["app_settings"] = self.app_settings

            try:
                result = task.func(*task.args, **call_kwargs)
            except Exception as e:
                self.outcomes.append(TaskOutcome(task.name, False, e))
                self.logger.critical(
                    f"🔥 Task '{task.name}' failed: {e}", exc_info=True
                )
                if task.fatal:
                    self.logger.error(
                        "A fatal error occurred. Halting bootstrap and exiting."
                    )
                    sys.exit(self.fatal_exit_code)
                self.logger.warning(
                    f"Task '{task.name}' was non-fatal. Continuing bootstrap."
                )
                all_succeeded = False
                continue

            self.context[f"{task.name}_result"] = result
            self.outcomes.append(TaskOutcome(task.name, True))
            self.logger.info(f"✅ Task '{task.name}' completed successfully.")

        if all_succeeded:
            self.logger.info("✨ Bootstrap finished successfully.")
        else:
            failed = [o.name for o in self.outcomes if not o.succeeded]
            self.logger.warning(
                f"Bootstrap finished with non-fatal failures: {', '.join(failed)}"
            )
        return all_succeeded
