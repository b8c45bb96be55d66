"""Test-output classification."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class Classification(str, Enum):
    """Verdict for one test run."""

    PASSED = "passed"
    FAILED = "failed"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class TestOutcome:
    """Raw test output and its classification."""

    __test__ = False  # not a pytest test class

    output: str
    classification: Classification

    @property
    def passed(self) -> bool:
        return self.classification is Classification.PASSED


class TestClassifier(Protocol):
    """Anything that can turn raw test output into a verdict."""

    __test__ = False

    def classify(self, raw_output: str) -> Classification:
        ...


class KeywordClassifier:
    """Keyword heuristic tuned for pytest's summary line.

    PASSED needs no failure/error marker and at least one success or
    no-tests marker; everything else is FAILED.
    """

    FAILURE_MARKERS = re.compile(r"\b(failed|failures?|errors?)\b")
    SUCCESS_MARKERS = re.compile(r"\bpassed\b")
    NO_TESTS_MARKERS = re.compile(r"no tests ran|no tests collected|collected 0 items")

    def classify(self, raw_output: str) -> Classification:
        text = (raw_output or "").lower()
        if self.FAILURE_MARKERS.search(text):
            return Classification.FAILED
        if self.SUCCESS_MARKERS.search(text) or self.NO_TESTS_MARKERS.search(text):
            return Classification.PASSED
        return Classification.FAILED
