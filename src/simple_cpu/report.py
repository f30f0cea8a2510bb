"""StatusReport: point-in-time view of the machine handed to a report sink."""

from dataclasses import dataclass, field
from typing import List


@dataclass
class StatusReport:
    """Status snapshot emitted at RET_FRM_SUBROUT and HALT.

    Attributes:
        title: Heading naming the event that produced the report
        instructions_executed: Instructions completed before this report
        stack_lines: Execution stack contents
        register_lines: Register values
        memory_lines: Memory inspection window
    """
    title: str
    instructions_executed: int
    stack_lines: List[str] = field(default_factory=list)
    register_lines: List[str] = field(default_factory=list)
    memory_lines: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        return [
            self.title,
            "-" * len(self.title),
            *self.stack_lines,
            *self.register_lines,
            *self.memory_lines,
            f"Instructions executed = {self.instructions_executed}",
        ]

    def render(self) -> str:
        return "\n".join(self.lines()) + "\n"

    def __str__(self) -> str:
        return self.render()
