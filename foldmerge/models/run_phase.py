"""
RunPhase enum for the run state machine.

Phases are entered in order during a run:
1. Scanning Sources - Walk every source root
2. Indexing Destination - Hash the destination tree and fingerprint its top-level folders
3. Folder Merge - Absorb source leaf folders grouped by normalized name
4. File Dedup - Copy residual files not already present
5. Complete - Terminal state of a finished run

PAUSED can interrupt any in-progress phase.
"""

from enum import Enum


class RunPhase(Enum):
    """Encodes the states a run moves through."""
    IDLE = "idle"
    SCANNING_SOURCES = "scanning_sources"
    INDEXING_DESTINATION = "indexing_destination"
    FOLDER_MERGE = "folder_merge"
    FILE_DEDUP = "file_dedup"
    COMPLETE = "complete"
    PAUSED = "paused"
