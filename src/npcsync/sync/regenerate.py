"""Profile regeneration stage — build a character's new derived record."""

from __future__ import annotations

from npcsync.core.errors import RegenerationError
from npcsync.core.logging import SyncLogger
from npcsync.core.models import CharacterUnit, DerivedRecord
from npcsync.llm.generator import TextGenerator, tracked_complete
from npcsync.llm.prompts import biography_prompt, profile_prompt, with_transcript


def regenerate(
    unit: CharacterUnit,
    transcript: str,
    generator: TextGenerator,
    previous: DerivedRecord | None = None,
    player_name: str = "",
    sync_logger: SyncLogger | None = None,
) -> DerivedRecord:
    """Produce a new record from the transcript and the previous record.

    Two generator calls: a structured profile, then a biography that is
    asked to stay close to the previous record. Their outputs are joined
    with a blank line. Nothing is persisted here.

    Raises:
        RegenerationError: on the first failed or empty response.
    """
    profile = tracked_complete(
        generator,
        with_transcript(profile_prompt(unit.name, player_name), transcript),
        unit.name,
        "profile",
        sync_logger,
    )
    if not profile.ok:
        raise RegenerationError(unit.name, f"profile: {profile.reason}")

    biography = tracked_complete(
        generator,
        with_transcript(
            biography_prompt(unit.name, previous.profile if previous is not None else ""),
            transcript,
        ),
        unit.name,
        "biography",
        sync_logger,
    )
    if not biography.ok:
        raise RegenerationError(unit.name, f"biography: {biography.reason}")

    return DerivedRecord(
        name=unit.name,
        profile=f"{profile.text.strip()}\n\n{biography.text.strip()}",
    )
