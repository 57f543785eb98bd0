"""Core mastery logic.

Modules:
- rating: Elo-style score update (pure)
- concept_resolver: Find-or-create concepts by tag
- mastery_updater: Apply attempt outcomes to stored mastery
- task_selector: Pick the next task for a learner
- catalog: Task catalog access and seeding
- submissions: Evaluate a submission and update mastery
"""

__all__ = [
    "rating",
    "concept_resolver",
    "mastery_updater",
    "task_selector",
    "catalog",
    "submissions",
]
