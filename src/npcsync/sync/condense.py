"""Condensation stage — shrink an over-budget transcript via the generator."""

from __future__ import annotations

from npcsync.core.errors import CondensationError
from npcsync.core.logging import SyncLogger
from npcsync.core.models import CharacterUnit, DerivedRecord
from npcsync.llm.generator import TextGenerator, tracked_complete
from npcsync.llm.prompts import condense_prompt, with_transcript


def needs_condensation(estimated_size: int, size_budget: int) -> bool:
    """Condense when the estimate reaches the budget; equal counts as over."""
    return estimated_size >= size_budget


def condense(
    unit: CharacterUnit,
    transcript: str,
    generator: TextGenerator,
    previous: DerivedRecord | None = None,
    player_name: str = "",
    sync_logger: SyncLogger | None = None,
) -> str:
    """Return a shorter replacement for ``transcript``.

    The previous derived profile, when there is one, goes into the prompt
    as continuity context. Semantic fidelity of the result is not checked.
    Writing the result is left to the caller.

    Raises:
        CondensationError: if the generator fails or returns nothing.
    """
    instructions = condense_prompt(
        unit.name,
        player_name,
        previous.profile if previous is not None else "",
    )
    completion = tracked_complete(
        generator,
        with_transcript(instructions, transcript),
        unit.name,
        "condense",
        sync_logger,
    )
    if not completion.ok:
        raise CondensationError(unit.name, completion.reason)
    return completion.text
