from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Protocol, Sequence, Tuple

DisplayOption = Tuple[str, str]


class PromptIO(Protocol):
    def print(self, text: str = "") -> None: ...

    def input(self, prompt: str = "") -> str: ...


class InteractiveSelector(Protocol):
    def choose(self, options: Sequence[DisplayOption]) -> int: ...


class ConsolePromptIO:
    def print(self, text: str = "") -> None:
        print(text)

    def input(self, prompt: str = "") -> str:
        return input(prompt)


@dataclass(slots=True)
class BufferPromptIO:
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    prompts: List[str] = field(default_factory=list)

    def print(self, text: str = "") -> None:
        self.outputs.append(text)

    def input(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise AssertionError("BufferPromptIO has no more inputs")
        return self.inputs.pop(0)


class PromptSelector:
    """Asks the user to pick one search result; reprompts until the answer is usable."""

    def __init__(self, prompt_io: PromptIO | None = None, header: str = "Multiple matches found:") -> None:
        self.prompt_io = prompt_io or ConsolePromptIO()
        self.header = header

    def choose(self, options: Sequence[DisplayOption]) -> int:
        if not options:
            raise ValueError("no options to choose from")
        self.prompt_io.print(f"\n{self.header}")
        for idx, (title, year) in enumerate(options, start=1):
            self.prompt_io.print(f"  {idx}. {title} ({year})")
        while True:
            raw = self.prompt_io.input(f"Select [1-{len(options)}]: ").strip()
            if not raw.isdigit():
                self.prompt_io.print("Invalid selection; enter a number.")
                continue
            choice = int(raw)
            if not 1 <= choice <= len(options):
                self.prompt_io.print("Selection out of range.")
                continue
            return choice - 1


@dataclass(slots=True)
class FirstOptionSelector:
    """Non-interactive selector for unattended runs: keeps the provider's top result."""

    calls: int = 0

    def choose(self, options: Sequence[DisplayOption]) -> int:
        if not options:
            raise ValueError("no options to choose from")
        self.calls += 1
        return 0
