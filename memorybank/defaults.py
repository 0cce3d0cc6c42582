"""Default markdown content for each known component.

Used when a component is read before it has ever been written, and by
ComponentStore.initialize() to bootstrap a fresh memory bank.
"""

from memorybank.schemas.enums import ComponentId

DEFAULT_ACTIVE_CONTEXT = """# Active Context

## Current Focus
*What the team is currently working on*

## Recent Changes
*Important changes made since the last update*

## Open Questions
*Questions that need resolution*

## Next Steps
*Immediate next actions*
"""

DEFAULT_PRODUCT_CONTEXT = """# Product Context

## Project Overview
*High-level description of the project*

## Goals and Objectives
*What the project aims to achieve*

## Key Features
*Main functionality of the system*

## Architecture
*Overall architecture of the system*

## Constraints
*Limitations and constraints*
"""

DEFAULT_DECISION_LOG = """# Decision Log

## Decisions
*Record of important decisions made during the project*

### YYYY-MM-DD: Decision Title
**Context:** What led to this decision
**Decision:** What was decided
**Rationale:** Why this option was chosen
**Consequences:** What this means for the project
"""

DEFAULT_PROGRESS = """# Progress

## Completed
- [ ] Initialize project

## In Progress
- [ ] Set up development environment

## Upcoming
- [ ] Implement core features
"""

DEFAULT_SYSTEM_PATTERNS = """# System Patterns

## Coding Patterns
*Standardized approaches to code implementation*

## Architectural Patterns
*Recurring architectural solutions*

## Testing Patterns
*How testing is approached in this project*
"""

DEFAULT_CONTENT: dict[ComponentId, str] = {
    ComponentId.ACTIVE_CONTEXT: DEFAULT_ACTIVE_CONTEXT,
    ComponentId.PRODUCT_CONTEXT: DEFAULT_PRODUCT_CONTEXT,
    ComponentId.DECISION_LOG: DEFAULT_DECISION_LOG,
    ComponentId.PROGRESS: DEFAULT_PROGRESS,
    ComponentId.SYSTEM_PATTERNS: DEFAULT_SYSTEM_PATTERNS,
}


def default_content(component_id: ComponentId) -> str:
    """Return the default content for a component ("" if none is defined)."""
    return DEFAULT_CONTENT.get(component_id, "")
