"""Confirmation strategies, chosen once per run."""

from __future__ import annotations
import sys
from typing import Callable

from ..models import IssueTag, RemediationAction
from ..utils import get_logger

logger = get_logger()


class ConfirmationStrategy:
    def confirm(self, action: RemediationAction) -> bool:
        raise NotImplementedError


class AlwaysConfirm(ConfirmationStrategy):
    def confirm(self, action: RemediationAction) -> bool:
        return True


class NeverConfirm(ConfirmationStrategy):
    def confirm(self, action: RemediationAction) -> bool:
        return False


class InteractiveConfirm(ConfirmationStrategy):
    """Ask before each action.

    ``prompt`` receives the question and returns the answer; only "y" and
    "yes" confirm. Answering "a"/"all" confirms the rest of the run.
    """

    def __init__(self, prompt: Callable[[str], str] = input):
        self.prompt = prompt
        self.confirm_all = False

    def confirm(self, action: RemediationAction) -> bool:
        if self.confirm_all:
            return True
        question = f"{action.describe()} in {action.region}? [y/N/a] "
        issue = action.parameters.get("issue")
        if issue and IssueTag(issue).is_configuration_mismatch:
            question = f"(configuration mismatch) {question}"
        try:
            answer = self.prompt(question).strip().lower()
        except EOFError:
            return False
        if answer in ("a", "all"):
            self.confirm_all = True
            return True
        return answer in ("y", "yes")


def select_strategy(
    auto_confirm: bool,
    interactive: bool | None = None,
    prompt: Callable[[str], str] = input,
) -> ConfirmationStrategy:
    """AlwaysConfirm with --auto-confirm, else ask on a TTY, else decline."""
    if auto_confirm:
        return AlwaysConfirm()
    if interactive is None:
        interactive = sys.stdin.isatty()
    if interactive:
        return InteractiveConfirm(prompt)
    logger.warning(
        "No terminal for confirmation and --auto-confirm not set; actions will be skipped"
    )
    return NeverConfirm()
