"""Terminal interaction: messages, prompts, menus and yes/no gates.

Every line shown and every answer typed is also written to the transcript
log through loguru.
"""

from __future__ import annotations

from typing import Callable, Iterable, Mapping, Optional, Tuple, TypeVar

from lvm_luks_extend.logging import LoggerFactory
from lvm_luks_extend.storage.exceptions import InvalidChoiceError, OperationCancelled

T = TypeVar("T")

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("", "n", "no")


class Console:
    def __init__(self, input_func: Callable[[str], str] = input):
        self._input = input_func
        self.log = LoggerFactory.for_console()
        self._plain = self.log.bind(plain=True)

    def status(self, message: str) -> None:
        self.log.info(message)

    def success(self, message: str) -> None:
        self.log.success(message)

    def warning(self, message: str) -> None:
        self.log.warning(message)

    def error(self, message: str) -> None:
        self.log.error(message)

    def line(self, text: str = "") -> None:
        self._plain.info(text)

    def lines(self, texts: Iterable[str]) -> None:
        for text in texts:
            self.line(text)

    def ask(self, prompt: str) -> str:
        """Read one answer; end of input cancels the operation."""
        try:
            answer = self._input(prompt)
        except EOFError:
            self.log.debug(f"{prompt.strip()} -> end of input")
            raise OperationCancelled() from None
        answer = answer.strip()
        self.log.debug(f"{prompt.strip()} -> {answer!r}")
        return answer

    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question, defaulting to no; re-asks on anything else."""
        while True:
            answer = self.ask(f"{prompt} (y/N): ").lower()
            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
            self.error("Please answer 'y' or 'n'.")

    def require_confirmation(self, prompt: str = "Do you want to continue?") -> None:
        """
        Raises:
            OperationCancelled: If the user declines
        """
        if not self.confirm(prompt):
            raise OperationCancelled()

    def choose(
        self,
        title: str,
        options: Mapping[str, Tuple[str, T]],
        prompt: str = "Enter your choice: ",
    ) -> T:
        """Show numbered options and return the value of the one picked.

        Args:
            title: Heading printed above the options
            options: key typed by the user -> (label, value)

        Raises:
            InvalidChoiceError: If the answer is not one of the keys
        """
        self.status(title)
        for key, (label, _value) in options.items():
            self.line(f"{key}) {label}")
        answer = self.ask(prompt)
        if answer not in options:
            raise InvalidChoiceError(answer, list(options))
        return options[answer][1]

    def try_choose(
        self,
        title: str,
        options: Mapping[str, Tuple[str, T]],
        prompt: str = "Enter your choice: ",
    ) -> Optional[T]:
        """Like choose(), but prints the error and returns None on a bad answer."""
        try:
            return self.choose(title, options, prompt)
        except InvalidChoiceError as error:
            self.error(str(error))
            return None
