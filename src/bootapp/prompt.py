"""Operator interaction port."""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import typer

from bootapp.errors import BootappError


class Prompter(ABC):
    """Answers the questions reconcilers need to ask."""

    @abstractmethod
    def confirm(self, question: str) -> bool:
        """Yes/no question, defaulting to no."""
        pass

    @abstractmethod
    def ask(self, question: str) -> str:
        """Free-form answer."""
        pass


class InteractivePrompter(Prompter):
    """Ask on the controlling terminal."""

    def confirm(self, question: str) -> bool:
        return typer.confirm(question, default=False)

    def ask(self, question: str) -> str:
        return typer.prompt(question).strip()


class PolicyPrompter(Prompter):
    """Non-interactive answers for scripted runs and tests."""

    def __init__(self, allow: bool = False, answers: Optional[Iterable[str]] = None):
        self.allow = allow
        self.answers: List[str] = list(answers or [])
        self.questions: List[str] = []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        return self.allow

    def ask(self, question: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise BootappError(f"No answer available for: {question}")
        return self.answers.pop(0)
