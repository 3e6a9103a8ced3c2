"""npcsync - Incremental profile synchronization for Mantella NPC memories.

Usage:
    from npcsync import Synchronizer, load_config, build_generator

    config = load_config(Path("Data/Skyrim/config.json"))
    sync = Synchronizer.from_config("Data/Skyrim", config, build_generator(config))
    result = sync.run()
    print(result.recorded, result.skipped, result.failed)
"""

from npcsync.core.config import LLMConfig, SyncConfig, load_config
from npcsync.core.models import (
    CharacterUnit,
    DerivedRecord,
    Fingerprint,
    SyncResult,
    UnitResult,
    UnitState,
)
from npcsync.llm.generator import Completion, TextGenerator
from npcsync.sync.orchestrator import Synchronizer, build_generator

__all__ = [
    "CharacterUnit",
    "Completion",
    "DerivedRecord",
    "Fingerprint",
    "LLMConfig",
    "SyncConfig",
    "SyncResult",
    "Synchronizer",
    "TextGenerator",
    "UnitResult",
    "UnitState",
    "build_generator",
    "load_config",
]

__version__ = "0.1.0"
