"""Text substitutions applied to known-malformed sources before parsing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from config.settings import FixerRule


@dataclass(frozen=True)
class Fixer:
    """``file_name`` limits the fixer to paths ending with that name."""

    name: str
    apply: Callable[[str], str]
    file_name: str | None = None

    def applies_to(self, path: str) -> bool:
        return self.file_name is None or path.endswith(self.file_name)


def _drop_lines_containing(marker: str) -> Callable[[str], str]:
    def apply(text: str) -> str:
        return "\n".join(line for line in text.split("\n") if marker not in line)

    return apply


def _replace(find: str, replace: str) -> Callable[[str], str]:
    def apply(text: str) -> str:
        return text.replace(find, replace)

    return apply


BUILTIN_FIXERS: tuple[Fixer, ...] = (
    Fixer(
        name="empty-self-parameter",
        apply=_replace("function(self, )", "function(self)"),
    ),
    Fixer(
        name="flora-pod-entries",
        apply=_drop_lines_containing("['Pod  |"),
        file_name="BP_Flora_InteractibleObjects.lua",
    ),
)


def fixers_from_config(rules: Sequence[FixerRule]) -> tuple[Fixer, ...]:
    return tuple(
        Fixer(
            name=f"config:{index}",
            apply=_replace(rule.find, rule.replace),
            file_name=rule.file_name,
        )
        for index, rule in enumerate(rules)
    )


def apply_fixers(path: str, text: str, fixers: Sequence[Fixer] = BUILTIN_FIXERS) -> str:
    """Run every applicable fixer over ``text`` in order."""
    for fixer in fixers:
        if fixer.applies_to(path):
            text = fixer.apply(text)
    return text


__all__ = ["BUILTIN_FIXERS", "Fixer", "apply_fixers", "fixers_from_config"]
