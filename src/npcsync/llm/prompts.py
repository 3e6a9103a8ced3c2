"""Prompt templates for profile, biography and memory condensation.

Each builder returns instructions; ``with_transcript`` appends the
transcript after a blank line.
"""

from __future__ import annotations

import textwrap


def memory_header(character: str) -> str:
    """First line every condensed memory file must start with."""
    return f"##These are {character}'s Exclusive memories:##"


def profile_prompt(character: str, player: str) -> str:
    return textwrap.dedent(f"""\
        Analyze all known memories for {character} and write a character profile.
        {character} is a character in a role-playing game and the memories describe
        their time with {player or "the player"}.

        Output rules:
        - Plain text only. No JSON, Markdown or code blocks. Never use double curly braces.
        - Write UNKNOWN for anything the memories do not support. Do not invent facts.
        - Relationships list specific named individuals only, never groups.
        - Stay under 1500 characters and output only the profile.

        Static fields (age, race, ideology, archetype) change only when a memory
        clearly contradicts them. Dynamic fields (occupation, location, physical
        status) follow the most recent memories.

        Format:
        Character Name: {character}
        Age:
        Current Occupation:
        Race:
        Last Known Location:
        Ideology:
        Personality Traits:
        Personality Archetype:
        Style of Conversation: [three short example lines joined by AND]
        Moral Compass:
        Fears:
        Physical Status:

        RELATIONSHIPS:
        [Name]: [Relationship]: [Short description]

        Use the following memories to build the profile:""")


_BIOGRAPHY_RULES = textwrap.dedent("""\
    Rules:
    - At most 1500 characters
    - Third person, as if introducing the character to a friend
    - Cover origins, personality and motivations
    - No chronology and no physical description
    - Output only the biography text""")


def biography_prompt(character: str, previous_record: str = "") -> str:
    """Biography instructions, keeping the previous record stable when possible."""
    parts = [f"Write {character}'s biography from the memories below."]
    if previous_record.strip():
        parts.append("Previous biography:\n" + previous_record.strip())
        parts.append(
            "If the memories add no concrete facts and contradict nothing, return the "
            "previous biography exactly. Otherwise change only the sentences the new "
            "facts require and keep the rest identical."
        )
    parts.append(_BIOGRAPHY_RULES)
    return "\n\n".join(parts)


def condense_prompt(character: str, player: str, previous_profile: str = "") -> str:
    """Instructions for rewriting an over-budget memory file."""
    rules = textwrap.dedent(f"""\
        Rewrite {character}'s memories below into a shorter summary that keeps every fact.
        Rules:
        1. Output the complete replacement summary, never a diff or an explanation.
        2. It MUST start with this line followed by a new line: {memory_header(character)}
        3. 5-10 chronological paragraphs. The first tells how {character} met
           {player or "the player"}; the last covers recent events in the most detail.
        4. Always use full names instead of pronouns. One fact per sentence.
        5. Merge repeated facts; drop nothing that is stated only once.

        Memories:""")
    if not previous_profile.strip():
        return rules
    context = f"Current profile of {character}, for continuity only:\n{previous_profile.strip()}"
    return f"{context}\n\n{rules}"


def with_transcript(instructions: str, transcript: str) -> str:
    return f"{instructions}\n\n{transcript}"
