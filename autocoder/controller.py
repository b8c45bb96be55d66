"""Outer loop: run a turn, verify with the test suite, retry with feedback."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from autocoder.classifier import Classification, KeywordClassifier, TestClassifier, TestOutcome
from autocoder.dispatcher import ToolDispatcher
from autocoder.exceptions import DispatchError, LLMError
from autocoder.logging import get_logger
from autocoder.tools.shell import run_shell

log = get_logger(__name__)

RETRY_TEMPLATE = (
    "Tests failed. Here is the output:\n{output}\n"
    "Please fix the errors. Original task: {task}"
)
TEST_EXECUTION_TEMPLATE = (
    "Tests command failed to execute. Here is the command output:\n{output}\n"
    "Please check the test setup or fix the code based on this. Original task: {task}"
)


class RunStatus(str, Enum):
    """Terminal state of a feedback run."""

    DONE = "done"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Task:
    """Instruction for one feedback turn."""

    instruction: str
    turn: int
    budget: int


@dataclass
class RunReport:
    """Outcome of :meth:`FeedbackController.run`."""

    status: RunStatus
    turns: int
    final_answer: str = ""
    last_outcome: TestOutcome | None = None
    error: str = ""
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status is RunStatus.DONE


class FeedbackController:
    """Drive the dispatcher turn by turn until the tests pass."""

    def __init__(
        self,
        dispatcher: ToolDispatcher,
        root: Path | str,
        tests_dir: str = "tests",
        test_command: str = "pytest --maxfail=1 --disable-warnings -q",
        max_turns: int = 10,
        retry_pause: float = 1.0,
        classifier: TestClassifier | None = None,
        test_timeout: float | None = 300.0,
        max_output_chars: int = 20000,
    ):
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.dispatcher = dispatcher
        self.root = Path(root)
        self.tests_dir = tests_dir
        self.test_command = test_command
        self.max_turns = max_turns
        self.retry_pause = retry_pause
        self.classifier = classifier or KeywordClassifier()
        self.test_timeout = test_timeout
        self.max_output_chars = max_output_chars

    def has_tests(self) -> bool:
        return (self.root / self.tests_dir).exists()

    async def run_tests(self) -> TestOutcome:
        """Run the test command and classify its output.

        A command that cannot be started or times out is INDETERMINATE.
        """
        try:
            result = await run_shell(
                self.root,
                self.test_command,
                timeout=self.test_timeout,
                max_output_chars=self.max_output_chars,
            )
        except OSError as e:
            log.error("Test command failed to start", command=self.test_command, error=str(e))
            return TestOutcome(output=f"Failed to start '{self.test_command}': {e}",
                               classification=Classification.INDETERMINATE)

        if result.timed_out:
            return TestOutcome(output=result.render(), classification=Classification.INDETERMINATE)
        return TestOutcome(output=result.render(), classification=self.classifier.classify(result.output))

    @staticmethod
    def next_instruction(outcome: TestOutcome, task: str) -> str:
        """Build the retry instruction embedding the test evidence."""
        template = (
            TEST_EXECUTION_TEMPLATE
            if outcome.classification is Classification.INDETERMINATE
            else RETRY_TEMPLATE
        )
        return template.format(output=outcome.output, task=task)

    def _report(self, status: RunStatus, turns: int, **kwargs) -> RunReport:
        return RunReport(status=status, turns=turns, usage=dict(self.dispatcher.usage), **kwargs)

    async def run(self, instruction: str) -> RunReport:
        """Run until DONE, EXHAUSTED (turn budget spent) or ABORTED (dispatcher failure)."""
        log.info("Starting task", instruction=instruction, max_turns=self.max_turns)
        task = Task(instruction=instruction, turn=1, budget=self.max_turns)
        answer = ""
        outcome: TestOutcome | None = None

        while task.turn <= task.budget:
            log.info("Executing turn", turn=task.turn, budget=task.budget)
            try:
                answer = await self.dispatcher.run_turn(task.instruction)
            except (DispatchError, LLMError) as e:
                log.error("Turn failed, stopping run", turn=task.turn, error=str(e))
                log.debug("Conversation at failure", messages=self.dispatcher.conversation.to_dicts())
                return self._report(
                    RunStatus.ABORTED,
                    task.turn,
                    final_answer=answer,
                    last_outcome=outcome,
                    error=str(e),
                )
            log.info("Model answer", turn=task.turn, answer=answer)

            if not self.has_tests():
                log.info("No tests found, task complete", tests_dir=self.tests_dir)
                return self._report(RunStatus.DONE, task.turn, final_answer=answer)

            log.info("Running tests", command=self.test_command)
            outcome = await self.run_tests()
            log.info("Test run classified", turn=task.turn, classification=outcome.classification.value)
            log.debug("Test output", output=outcome.output)

            if outcome.passed:
                log.info("All tests passed", turns=task.turn)
                return self._report(RunStatus.DONE, task.turn, final_answer=answer, last_outcome=outcome)

            if task.turn == task.budget:
                break

            log.info("Tests failed, asking for fixes", turn=task.turn)
            task = Task(
                instruction=self.next_instruction(outcome, instruction),
                turn=task.turn + 1,
                budget=task.budget,
            )
            if self.retry_pause > 0:
                await asyncio.sleep(self.retry_pause)

        log.warning("Turn budget exhausted", turns=self.max_turns)
        return self._report(
            RunStatus.EXHAUSTED,
            self.max_turns,
            final_answer=answer,
            last_outcome=outcome,
            error=f"Tests still failing after {self.max_turns} turn(s)",
        )
