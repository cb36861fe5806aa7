import logging
import os
import time

import pytest

from ec2_quickstart import logger


@pytest.fixture(autouse=True)
def _isolate(monkeypatch):
    # Keep records flowing to caplog and never really sleep.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.DEBUG)
    for key in list(os.environ):
        if key.startswith("QUICKSTART_"):
            monkeypatch.delenv(key)
    monkeypatch.setattr(time, "sleep", lambda s: None)
    monkeypatch.setenv("KUBECONFIG", "/nonexistent/kubeconfig")
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True


class Answers:
    """Scripted replacement for ``Prompt.ask``."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.questions = []

    def __call__(self, question, *args, **kwargs):
        self.questions.append(question)
        answer = self.answers.pop(0)
        if answer is None:
            return kwargs.get("default", "")
        return answer


@pytest.fixture
def answers(monkeypatch):
    from rich.prompt import Prompt

    def install(*values):
        fake = Answers(*values)
        monkeypatch.setattr(Prompt, "ask", fake)
        return fake

    return install
