"""Interactive prompt helpers for the setup wizard."""

from __future__ import annotations

import builtins
from dataclasses import dataclass, field
from typing import Any, Callable

InputFunc = Callable[[str], str]
EchoFunc = Callable[[str], None]
Validator = Callable[[str], None]


def _default_echo(message: str) -> None:
    print(message)


class Prompt:
    """Read validated answers from ``input_func``, re-asking until one is accepted."""

    def __init__(self, *, input_func: InputFunc | None = None, echo: EchoFunc | None = None) -> None:
        self._input = input_func or builtins.input
        self._echo = echo or _default_echo

    def _ask(self, label: str, default: object | None) -> str:
        return self._input(_format_prompt(label, default)).strip()

    def string(
        self,
        label: str,
        default: object | None = None,
        *,
        transform: Callable[[str], str] | None = None,
        validator: Validator | None = None,
    ) -> str:
        while True:
            raw = self._ask(label, default)
            value = raw or ("" if default is None else str(default))
            if not value:
                self._echo("Value required")
                continue
            if transform is not None:
                value = transform(value)
            if self._rejected(value, validator):
                continue
            return value

    def optional_string(
        self,
        label: str,
        default: object | None = None,
        *,
        transform: Callable[[str], str] | None = None,
        validator: Validator | None = None,
    ) -> str | None:
        """Blank keeps ``default``; a single ``-`` clears it."""
        while True:
            raw = self._ask(label, default)
            if raw == "-":
                return None
            if not raw:
                return None if default in (None, "") else str(default)
            value = transform(raw) if transform is not None else raw
            if self._rejected(value, validator):
                continue
            return value

    def integer(
        self,
        label: str,
        default: object | None = None,
        *,
        minimum: int | None = None,
        maximum: int | None = None,
    ) -> int:
        while True:
            raw = self._ask(label, default)
            value = _parse_int(default if not raw and default is not None else raw)
            if value is None:
                self._echo("Enter a valid integer")
                continue
            if not self._within(value, minimum, maximum):
                continue
            return value

    def optional_float(
        self,
        label: str,
        default: object | None = None,
        *,
        minimum: float | None = None,
        maximum: float | None = None,
    ) -> float | None:
        while True:
            raw = self._ask(label, default)
            if raw == "-":
                return None
            if not raw:
                return None if default is None else _parse_float(default)
            value = _parse_float(raw)
            if value is None:
                self._echo("Enter a numeric value, '-' to clear, or leave blank")
                continue
            if not self._within(value, minimum, maximum):
                continue
            return value

    def _rejected(self, value: str, validator: Validator | None) -> bool:
        if validator is None:
            return False
        try:
            validator(value)
        except ValueError as exc:
            self._echo(str(exc))
            return True
        return False

    def _within(self, value: float, minimum: float | None, maximum: float | None) -> bool:
        if minimum is not None and value < minimum:
            self._echo(f"Value must be >= {minimum}")
            return False
        if maximum is not None and value > maximum:
            self._echo(f"Value must be <= {maximum}")
            return False
        return True


def prompt_yes_no(
    message: str,
    *,
    default: bool,
    input_func: InputFunc | None = None,
    echo: EchoFunc | None = None,
) -> bool:
    """Prompt user for a yes/no response, re-asking on invalid input."""

    input_impl = input_func or builtins.input
    echo_impl = echo or _default_echo
    default_hint = "Y/n" if default else "y/N"
    while True:
        response = input_impl(f"{message} [{default_hint}]: ").strip().lower()
        if not response:
            return default
        if response in {"y", "yes"}:
            return True
        if response in {"n", "no"}:
            return False
        echo_impl("Please answer 'y' or 'n'")


@dataclass
class PromptSession:
    """Bundle prompt helpers with injectable I/O functions."""

    input_func: InputFunc | None = None
    echo: EchoFunc | None = None
    _prompt: Prompt | None = field(init=False, default=None)

    @property
    def prompt(self) -> Prompt:
        if self._prompt is None:
            self._prompt = Prompt(input_func=self.input_func, echo=self.echo)
        return self._prompt

    def ask_yes_no(self, message: str, *, default: bool) -> bool:
        return prompt_yes_no(message, default=default, input_func=self.input_func, echo=self.echo)

    def say(self, message: str) -> None:
        (self.echo or _default_echo)(message)


def _format_prompt(label: str, default: object | None) -> str:
    suffix = f" [{default}]" if default not in (None, "") else ""
    return f"{label}{suffix}: "


def _parse_int(raw: Any) -> int | None:
    try:
        return int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _parse_float(raw: Any) -> float | None:
    try:
        return float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


__all__ = ["Prompt", "PromptSession", "prompt_yes_no"]
