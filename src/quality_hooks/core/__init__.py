"""Core business logic components.

This module exports the main business logic classes:
- QualityHookEngine: Validate, fix and verify a single file
- ValidationOrchestrator: Runs analyzers concurrently and caches reports
- FixSequencer: Applies fixes group by group with rollback
- FixVerifier: Re-validates fixed content
"""

from quality_hooks.core.engine import QualityHookEngine, create_engine
from quality_hooks.core.orchestrator import ValidationCache, ValidationOrchestrator
from quality_hooks.core.sequencer import (
    FixSequencer,
    classify_priority,
    detect_conflicts,
    fix_group,
    fix_line_range,
    plan_fixes,
)
from quality_hooks.core.verifier import FixVerifier

__all__ = [
    "FixSequencer",
    "FixVerifier",
    "QualityHookEngine",
    "ValidationCache",
    "ValidationOrchestrator",
    "classify_priority",
    "create_engine",
    "detect_conflicts",
    "fix_group",
    "fix_line_range",
    "plan_fixes",
]
